import json
import logging
from unittest.mock import MagicMock

from agenda.services.events import EventEmitter


def test_emit_pushes_json_to_queue():
    redis = MagicMock()
    EventEmitter(redis, "events:p2p").emit("booking_created", {"booking_id": 5})

    queue, raw = redis.rpush.call_args.args
    event = json.loads(raw)
    assert queue == "events:p2p"
    assert event["type"] == "booking_created"
    assert event["booking_id"] == 5
    assert isinstance(event["ts"], int)


def test_emit_failure_is_logged_not_raised(caplog):
    redis = MagicMock()
    redis.rpush.side_effect = ConnectionError("redis down")

    with caplog.at_level(logging.ERROR):
        EventEmitter(redis).emit("booking_done", {"booking_id": 1})

    assert "Failed to emit event booking_done" in caplog.text


def test_emit_without_redis_is_noop():
    EventEmitter(None).emit("slots_generated", {"provider_id": 1})
