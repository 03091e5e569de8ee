import asyncio
from datetime import datetime, timezone

import pytest

from bedtime.alerts.detector import PatternDetector, dns_answers
from bedtime.alerts.rules import NetflixRule
from bedtime.alerts.state import DetectorState
from bedtime.errors import MalformedAnalysisResult
from bedtime.utils.types import BedtimeResult, Connection, DnsAnswer, DnsResult
from tests.helpers.fake_http import RecordingSend

def _conn(*names, hour=23, minute=4, dns="result"):
    analyzers = {}
    if dns == "result":
        analyzers["dns"] = DnsResult([DnsAnswer(n) for n in names])
    elif dns is not None:
        analyzers["dns"] = dns
    return Connection(timestamp=datetime(2024, 2, 1, hour, minute, tzinfo=timezone.utc),
                      destination_ip="192.168.1.20", analyzers=analyzers)

def _detector(policy="immediate", threshold=3, fail=False, target="netflix"):
    send = RecordingSend(fail=fail)
    st = DetectorState()
    det = PatternDetector(NetflixRule(policy=policy, threshold=threshold, target=target), st, send)
    return det, st, send

# ---- immediate-fire ----

@pytest.mark.asyncio
async def test_immediate_fires_once_and_sets_flag():
    det, st, send = _detector()
    res, err = await det.process(_conn("www.netflix.com", "assets.nflxext.com"))
    assert res == BedtimeResult() and err is None
    assert send.texts == ["192.168.1.20 is watching Netflix at 11:04PM!"]
    assert st.already_notified is True

    await det.process(_conn("www.netflix.com"))
    assert len(send.texts) == 1

@pytest.mark.asyncio
async def test_immediate_stops_scanning_after_success():
    det, st, send = _detector()
    await det.process(_conn("a.netflix.com", "b.netflix.com", "c.netflix.com"))
    assert len(send.texts) == 1

@pytest.mark.asyncio
async def test_immediate_failure_keeps_flag_clear_and_retries():
    det, st, send = _detector(fail=True)
    await det.process(_conn("a.netflix.com", "b.netflix.com"))
    # each hit in the event tries again
    assert len(send.texts) == 2
    assert st.already_notified is False

    send.fail = False
    await det.process(_conn("www.netflix.com"))
    assert len(send.texts) == 3
    assert st.already_notified is True

@pytest.mark.asyncio
async def test_no_match_no_send():
    det, st, send = _detector()
    await det.process(_conn("www.youtube.com", "example.org"))
    assert send.texts == []
    assert st == DetectorState()

@pytest.mark.asyncio
async def test_match_is_case_insensitive_substring():
    det, _, send = _detector(target="netflix.com")
    await det.process(_conn("NETFLIX.example"))
    assert send.texts == []
    await det.process(_conn("api-global.NETFLIX.COM"))
    assert len(send.texts) == 1

# ---- threshold-counted ----

@pytest.mark.asyncio
async def test_threshold_fires_on_third_event_and_resets():
    det, st, send = _detector(policy="threshold", threshold=3)
    await det.process(_conn("x.netflix.com"))
    await det.process(_conn("x.netflix.com"))
    assert send.texts == [] and st.occurrence_count == 2

    await det.process(_conn("x.netflix.com"))
    assert len(send.texts) == 1
    assert st.occurrence_count == 0
    assert st.already_notified is False

    await det.process(_conn("x.netflix.com"))
    assert len(send.texts) == 1
    assert st.occurrence_count == 1

@pytest.mark.asyncio
async def test_threshold_counts_hits_within_one_event():
    det, st, send = _detector(policy="threshold", threshold=2)
    await det.process(_conn("a.netflix.com", "b.netflix.com", "c.netflix.com"))
    assert len(send.texts) == 1
    # scanning stops after the send
    assert st.occurrence_count == 0

@pytest.mark.asyncio
async def test_threshold_failure_keeps_count():
    det, st, send = _detector(policy="threshold", threshold=2, fail=True)
    await det.process(_conn("x.netflix.com"))
    await det.process(_conn("x.netflix.com"))
    assert len(send.texts) == 1
    assert st.occurrence_count == 2

    send.fail = False
    await det.process(_conn("x.netflix.com"))
    assert len(send.texts) == 2
    assert st.occurrence_count == 0

@pytest.mark.asyncio
async def test_threshold_of_one_behaves_like_every_hit():
    det, st, send = _detector(policy="threshold", threshold=1)
    await det.process(_conn("x.netflix.com"))
    await det.process(_conn("x.netflix.com"))
    assert len(send.texts) == 2

# ---- malformed analysis ----

def test_dns_answers_rejects_unknown_shape():
    with pytest.raises(MalformedAnalysisResult):
        dns_answers(_conn(dns={"answers": "nope"}))

@pytest.mark.asyncio
async def test_malformed_result_treated_as_empty():
    det, st, send = _detector()
    res, err = await det.process(_conn(dns="not-a-dns-result"))
    assert res.key() == "netflix_detector" and err is None
    assert send.texts == []

    res, err = await det.process(_conn(dns=None))
    assert err is None and send.texts == []

# ---- concurrency ----

@pytest.mark.asyncio
async def test_concurrent_process_sends_once():
    sent = []

    async def slow_send(text):
        await asyncio.sleep(0.01)
        sent.append(text)

    st = DetectorState()
    det = PatternDetector(NetflixRule(), st, slow_send)
    await asyncio.gather(*(det.process(_conn("www.netflix.com")) for _ in range(5)))
    assert len(sent) == 1
    assert st.already_notified is True

@pytest.mark.asyncio
async def test_independent_detectors_do_not_share_state():
    d1, s1, send1 = _detector()
    d2, s2, send2 = _detector()
    await d1.process(_conn("www.netflix.com"))
    assert s1.already_notified and not s2.already_notified
    await d2.process(_conn("www.netflix.com"))
    assert len(send1.texts) == len(send2.texts) == 1

@pytest.mark.asyncio
async def test_newline_token_send_failure_stays_inside_process():
    from bedtime.notify.slack import SlackConfig, SlackNotifier
    from tests.helpers.fake_http import FakeSession

    notifier = SlackNotifier(SlackConfig(token="xoxb-abc\n", channel="U123"))
    notifier._session = FakeSession()
    st = DetectorState()
    det = PatternDetector(NetflixRule(), st, notifier.send)

    res, err = await det.process(_conn("www.netflix.com"))
    assert res == BedtimeResult() and err is None
    assert st.already_notified is False

@pytest.mark.asyncio
async def test_unexpected_send_exception_is_contained():
    calls = []

    async def broken_send(text):
        calls.append(text)
        raise RuntimeError("socket on fire")

    st = DetectorState()
    det = PatternDetector(NetflixRule(policy="threshold", threshold=1), st, broken_send)
    res, err = await det.process(_conn("www.netflix.com"))
    assert res == BedtimeResult() and err is None
    assert len(calls) == 1
    assert st.occurrence_count == 1 and st.already_notified is False
