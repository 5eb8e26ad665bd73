from __future__ import annotations
import json
from urllib.parse import urlencode

from tournament.security import data_check_string, sign_init_data, verify_init_data

BOT_TOKEN = "123456:test-bot-token"


def _init_data(user: dict | None = None, token: str = BOT_TOKEN, raw_user: str | None = None) -> str:
    fields = {"auth_date": "1772000000", "query_id": "AAHdF6IQAAAAAN0XohDhrOrc"}
    if user is not None:
        fields["user"] = json.dumps(user, separators=(",", ":"))
    if raw_user is not None:
        fields["user"] = raw_user
    fields["hash"] = sign_init_data(fields, token)
    return urlencode(fields)


def test_data_check_string_is_sorted_and_excludes_hash():
    s = data_check_string({"user": "u", "hash": "h", "auth_date": "1"})
    assert s == "auth_date=1\nuser=u"


def test_valid_init_data_returns_user():
    user = verify_init_data(_init_data({"id": 42, "first_name": "Ann", "username": "ann"}), BOT_TOKEN)
    assert user is not None
    assert user.id == 42 and user.username == "ann"


def test_wrong_token_is_rejected():
    raw = _init_data({"id": 42, "first_name": "Ann"}, token="999:other")
    assert verify_init_data(raw, BOT_TOKEN) is None


def test_tampered_field_is_rejected():
    raw = _init_data({"id": 42, "first_name": "Ann"})
    tampered = raw.replace("%22id%22%3A42", "%22id%22%3A43")
    assert tampered != raw
    assert verify_init_data(tampered, BOT_TOKEN) is None


def test_missing_hash_or_user():
    assert verify_init_data("auth_date=1", BOT_TOKEN) is None
    assert verify_init_data(_init_data(None), BOT_TOKEN) is None


def test_malformed_user_payload():
    assert verify_init_data(_init_data(raw_user="not-json"), BOT_TOKEN) is None
    assert verify_init_data(_init_data({"id": "42", "first_name": "Ann"}), BOT_TOKEN) is None
