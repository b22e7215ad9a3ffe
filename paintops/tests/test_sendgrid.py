from paintops.integrations.base import BaseIntegration
from paintops.integrations.sendgrid import EmailClient, _addresses


def test_addresses_split_and_trim():
    assert _addresses("a@test.com; b@test.com ,") == [{"email": "a@test.com"}, {"email": "b@test.com"}]
    assert _addresses(["c@test.com", ""]) == [{"email": "c@test.com"}]
    assert _addresses(None) == []


def test_payload_omits_empty_copies():
    client = EmailClient()
    payload = client.build_payload(
        _addresses("ap@maplecourt.com"), "Extra charges", "<p>Hi</p>", cc="", bcc=None,
        sender="office@paintops.app", from_name="Office",
    )
    assert payload["personalizations"] == [{"to": [{"email": "ap@maplecourt.com"}]}]
    assert payload["from"] == {"email": "office@paintops.app", "name": "Office"}
    assert payload["content"][0] == {"type": "text/html", "value": "<p>Hi</p>"}


def test_payload_carries_cc_and_bcc():
    payload = EmailClient().build_payload(
        _addresses("ap@maplecourt.com"), "Invoice", "<p>Hi</p>",
        cc="pm@maplecourt.com", bcc="office@paintops.app, records@paintops.app",
    )
    personalization = payload["personalizations"][0]
    assert personalization["cc"] == [{"email": "pm@maplecourt.com"}]
    assert len(personalization["bcc"]) == 2
    assert payload["from"]["email"] == "no-reply@paintops.app"


def test_mock_keys():
    assert BaseIntegration.is_mock_key("mock_sendgrid_key")
    assert BaseIntegration.is_mock_key("  ")
    assert BaseIntegration.is_mock_key(None)
    assert not BaseIntegration.is_mock_key("SG.real-looking-key")
