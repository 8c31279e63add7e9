import json

import pytest
from structlog.testing import capture_logs

from pricebridge.alerts.state import NotificationState
from storage.state_file import load_state, save_state


def test_missing_file_gives_defaults(tmp_path):
    st = load_state(tmp_path / "nope.json")
    assert st == NotificationState()


@pytest.mark.parametrize("body", [
    "{not json",
    "[1, 2]",
    '{"previousPrice": "abc"}',
    '{"messageId": {"x": 1}}',
    '{"last24hTimestamp": 1e400}',
    '{"last24hTimestamp": Infinity}',
    '{"previousPrice": Infinity}',
    '{"last24hPrice": NaN}',
])
def test_malformed_file_gives_defaults_and_warns(tmp_path, body):
    p = tmp_path / "price_data.json"
    p.write_text(body)
    with capture_logs() as logs:
        st = load_state(p)
    assert st.previous_price is None and st.message_id is None
    assert any(e["event"] == "state_file_unreadable_starting_fresh" and e["log_level"] == "warning" for e in logs)


def test_loads_file_written_by_previous_versions(tmp_path):
    p = tmp_path / "price_data.json"
    p.write_text(json.dumps({
        "previousPrice": 0.0421,
        "messageId": "1234567890",
        "last24hPrice": 0.04,
        "last24hTimestamp": 1700000000000,
    }))
    st = load_state(p)
    assert st == NotificationState(0.0421, "1234567890", 0.04, 1700000000000)


def test_save_is_pretty_and_loadable(tmp_path):
    p = tmp_path / "sub" / "price_data.json"
    st = NotificationState(previous_price=1.5, message_id="99", last_24h_price=1.4, last_24h_ts=123)
    save_state(p, st)

    text = p.read_text()
    assert text.startswith("{\n  ")
    assert json.loads(text) == {
        "previousPrice": 1.5,
        "messageId": "99",
        "last24hPrice": 1.4,
        "last24hTimestamp": 123,
    }
    assert load_state(p) == st
    # no temp files left behind
    assert [f.name for f in p.parent.iterdir()] == ["price_data.json"]


def test_numeric_message_id_is_normalized_to_str():
    st = NotificationState.from_dict({"messageId": 42})
    assert st.message_id == "42"
