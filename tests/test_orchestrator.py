import asyncio

import pytest

from core.models import GenerationOptions, GenerationRequest, Subject
from core.orchestrator import OutcomeKind, process
from core.policy import Gate


class RecordingService:
    def __init__(self, text="Giáo án đã tích hợp năng lực số", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate(self, request):
        self.calls.append(request)
        if self.error:
            raise self.error
        return self.text


def _request(content="Bài 1: Phân số", **options):
    return GenerationRequest(
        subject=Subject.TOAN,
        grade=6,
        content=content,
        distribution_content="Tuần 1: Phân số",
        options=GenerationOptions(**options),
    )


def _run(request, store, service):
    return asyncio.run(process(request, store, service))


def test_success_returns_text(store):
    store.start_trial()
    service = RecordingService()

    outcome = _run(_request(), store, service)
    assert outcome.ok
    assert outcome.kind == OutcomeKind.SUCCESS
    assert outcome.text == "Giáo án đã tích hợp năng lực số"
    assert len(service.calls) == 1


def test_request_and_options_reach_the_service(store):
    store.start_trial()
    service = RecordingService()

    _run(_request(analyze_only=True, detailed_report=True, api_key="k-123"), store, service)
    sent = service.calls[0]
    assert sent.distribution_content == "Tuần 1: Phân số"
    assert sent.options.analyze_only is True
    assert sent.options.detailed_report is True
    assert sent.options.api_key == "k-123"


@pytest.mark.parametrize("content", ["", "   ", "\n\t  \n"])
def test_blank_content_is_rejected_before_calling_service(store, content):
    store.start_trial()
    service = RecordingService()

    outcome = _run(_request(content=content), store, service)
    assert outcome.kind == OutcomeKind.VALIDATION_ERROR
    assert outcome.message
    assert service.calls == []


def test_no_membership_is_denied_with_trial_gate(store):
    service = RecordingService()

    outcome = _run(_request(), store, service)
    assert outcome.kind == OutcomeKind.ACCESS_DENIED
    assert outcome.gate == Gate.TRIAL
    assert service.calls == []


def test_expired_trial_is_denied_with_subscription_gate(store, clock):
    store.start_trial()
    clock.advance(days=3)
    service = RecordingService()

    outcome = _run(_request(), store, service)
    assert outcome.kind == OutcomeKind.ACCESS_DENIED
    assert outcome.gate == Gate.SUBSCRIPTION
    assert service.calls == []


def test_access_is_checked_before_content(store):
    service = RecordingService()
    outcome = _run(_request(content=""), store, service)
    assert outcome.kind == OutcomeKind.ACCESS_DENIED


def test_whitespace_result_is_empty_result(store):
    store.activate_premium(365)
    outcome = _run(_request(), store, RecordingService(text="   "))
    assert outcome.kind == OutcomeKind.EMPTY_RESULT
    assert not outcome.ok
    assert outcome.text is None


def test_none_result_is_empty_result(store):
    store.activate_premium(365)
    outcome = _run(_request(), store, RecordingService(text=None))
    assert outcome.kind == OutcomeKind.EMPTY_RESULT


def test_service_failure_is_surfaced_verbatim(store):
    store.start_trial()
    service = RecordingService(error=RuntimeError("quota exceeded"))

    outcome = _run(_request(), store, service)
    assert outcome.kind == OutcomeKind.EXTERNAL_SERVICE_ERROR
    assert outcome.message == "quota exceeded"
    # single attempt, no retry
    assert len(service.calls) == 1


def test_process_does_not_change_membership(store, storage):
    store.start_trial()
    before = storage.read()

    _run(_request(), store, RecordingService())
    _run(_request(), store, RecordingService(error=RuntimeError("boom")))
    assert storage.read() == before


def test_unknown_option_is_rejected():
    with pytest.raises(ValueError):
        GenerationOptions(analyze_only=True, temperature=0.9)
