import asyncio
import json
import logging
from uuid import uuid4

from univote.results_service.live import VOTE_CHANNEL, VoteFeed, drain


def test_publish_reaches_only_that_elections_subscribers():
    feed = VoteFeed()
    election, other = uuid4(), uuid4()

    async def scenario():
        async with feed.subscribe(election) as q1, feed.subscribe(election) as q2, \
                feed.subscribe(other) as q3:
            delivered = feed.publish(election, {"vote_id": "v1"})
            return delivered, q1.qsize(), q2.qsize(), q3.qsize()

    assert asyncio.run(scenario()) == (2, 1, 1, 0)


def test_unsubscribe_on_exit():
    feed = VoteFeed()
    election = uuid4()

    async def scenario():
        async with feed.subscribe(election):
            assert feed.subscriber_count(election) == 1
        return feed.subscriber_count(election), feed.publish(election, {})

    assert asyncio.run(scenario()) == (0, 0)


def test_full_queue_drops_event_without_error(caplog):
    feed = VoteFeed(queue_size=1)
    election = uuid4()

    async def scenario():
        async with feed.subscribe(election) as queue:
            first = feed.publish(election, {"n": 1})
            second = feed.publish(election, {"n": 2})
            return first, second, queue.qsize()

    with caplog.at_level(logging.WARNING, logger="results-service"):
        assert asyncio.run(scenario()) == (1, 0, 1)
    assert "event dropped" in caplog.text


def test_notification_payload_is_routed_by_election():
    seen = []
    feed = VoteFeed(on_event=seen.append)
    election = uuid4()
    payload = json.dumps({"election_id": str(election), "vote_id": str(uuid4())})

    async def scenario():
        async with feed.subscribe(election) as queue:
            feed._on_notify(None, 1234, VOTE_CHANNEL, payload)
            return await asyncio.wait_for(queue.get(), timeout=1)

    event = asyncio.run(scenario())
    assert event["election_id"] == str(election)
    assert seen == [election]


def test_malformed_payload_is_ignored(caplog):
    feed = VoteFeed()
    election = uuid4()

    async def scenario():
        async with feed.subscribe(election) as queue:
            feed._on_notify(None, 1234, VOTE_CHANNEL, "not json")
            feed._on_notify(None, 1234, VOTE_CHANNEL, json.dumps({"election_id": "nope"}))
            feed._on_notify(None, 1234, VOTE_CHANNEL, json.dumps({}))
            return queue.qsize()

    with caplog.at_level(logging.WARNING, logger="results-service"):
        assert asyncio.run(scenario()) == 0
    assert caplog.text.count("Ignoring malformed") == 3


def test_drain_collapses_pending_events():
    async def scenario():
        queue = asyncio.Queue()
        for i in range(5):
            queue.put_nowait({"n": i})
        return drain(queue), queue.qsize()

    assert asyncio.run(scenario()) == (5, 0)


def test_feed_not_listening_until_started():
    assert VoteFeed().listening is False
    asyncio.run(VoteFeed().stop())
