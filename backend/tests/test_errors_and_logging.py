import json

from conftest import ScriptedGateway

from groupbot.core.errors import NluUnavailable, SendFailed, UnknownCustomIntent
from groupbot.core.logger import SessionLogger
from groupbot.core.types import MessagingEvent, NluReply, SpeechReply


def _records(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def test_session_logger_writes_jsonl(tmp_path):
    logger = SessionLogger("u1", base_dir=str(tmp_path))
    logger.user_message("hello")
    logger.error("SendFailed", "boom", status_code=500)

    records = _records(tmp_path / "session_u1.jsonl")
    assert [r["event"] for r in records] == ["user_message", "error"]
    assert records[1]["payload"] == {"kind": "SendFailed", "message": "boom", "status_code": 500}
    assert records[0]["ts"].endswith("Z")
    assert all(r["session_id"] == "u1" for r in records)


def test_turn_writes_a_trail_per_user(make_pipeline, tmp_path):
    pipe = make_pipeline(
        ScriptedGateway(
            NluReply(parameters={"user-grade": 4}, directives=[SpeechReply(text="Nice")]),
            NluReply(directives=[SpeechReply(text="Hey")]),
        )
    )
    pipe.run_turn("u1", "grade 4")
    pipe.run_turn("u2", "hey")

    u1 = _records(tmp_path / "logs" / "session_u1.jsonl")
    events = [r["event"] for r in u1]
    assert events[0] == "user_message"
    assert "slots" in events and "sent" in events and "assistant_message" in events
    steps = [r["payload"]["name"] for r in u1 if r["event"] == "agent_step"]
    assert steps == ["nlu", "router"]
    slots = [r["payload"] for r in u1 if r["event"] == "slots"][0]
    assert slots == {"from": None, "to": {"user-grade": 4}}
    assert (tmp_path / "logs" / "session_u2.jsonl").exists()


def test_one_failing_event_does_not_stop_the_batch(make_pipeline, sender, monkeypatch):
    gateway = ScriptedGateway()
    pipe = make_pipeline(gateway)

    def explode(event):
        raise RuntimeError("bad event")

    monkeypatch.setattr(pipe, "on_postback", explode)
    pipe.handle_event(MessagingEvent.model_validate({"sender": {"id": "u1"}, "postback": {"payload": "x"}}))
    pipe.handle_event(MessagingEvent.model_validate({"sender": {"id": "u1"}, "message": {"text": "still here"}}))

    assert gateway.calls[0][1] == "still here"


def test_error_types_carry_details():
    assert isinstance(NluUnavailable("x"), Exception)
    err = SendFailed("nope", 400)
    assert err.status_code == 400 and str(err) == "nope"
    assert UnknownCustomIntent("book").intent_name == "book"
