import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from core.membership import MembershipState
from core.models import GenerationRequest
from core.policy import Gate, can_access, gate_for

logger = logging.getLogger("nls-api.orchestrator")

MSG_EMPTY_CONTENT = "Vui lòng tải lên file giáo án (Giáo án trống hoặc chưa được tải)."
MSG_EMPTY_RESULT = "AI trả về kết quả rỗng. Vui lòng thử lại với file giáo án rõ ràng hơn."
MSG_ACCESS_DENIED = "Bạn cần dùng thử hoặc nâng cấp Premium để tiếp tục sử dụng."
MSG_UNKNOWN_ERROR = "Đã xảy ra lỗi không xác định khi kết nối với AI."


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    ACCESS_DENIED = "access_denied"
    EXTERNAL_SERVICE_ERROR = "external_service_error"
    EMPTY_RESULT = "empty_result"


@dataclass(frozen=True)
class GenerationOutcome:
    kind: OutcomeKind
    text: Optional[str] = None
    message: Optional[str] = None
    gate: Optional[Gate] = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS


class GenerationService(Protocol):
    async def generate(self, request: GenerationRequest) -> str:
        ...


class MembershipReader(Protocol):
    def current_status(self) -> MembershipState:
        ...


async def process(
    request: GenerationRequest,
    store: MembershipReader,
    service: GenerationService,
) -> GenerationOutcome:
    """Run one generation request through gating, validation and the external call.

    Stateless: keeping a single request in flight is the caller's job. The store
    is only read here; lazy expiry may persist inside ``current_status``.
    """
    membership = store.current_status()
    if not can_access(membership):
        gate = gate_for(membership)
        logger.info("generation_access_denied", extra={"membership_status": membership.status.value, "outcome": gate.value})
        return GenerationOutcome(kind=OutcomeKind.ACCESS_DENIED, message=MSG_ACCESS_DENIED, gate=gate)

    if not request.content or not request.content.strip():
        return GenerationOutcome(kind=OutcomeKind.VALIDATION_ERROR, message=MSG_EMPTY_CONTENT)

    try:
        text = await service.generate(request)
    except Exception as e:
        logger.error("generation_service_error", exc_info=True, extra={"outcome": OutcomeKind.EXTERNAL_SERVICE_ERROR.value})
        return GenerationOutcome(
            kind=OutcomeKind.EXTERNAL_SERVICE_ERROR,
            message=str(e) or MSG_UNKNOWN_ERROR,
        )

    if not isinstance(text, str) or not text.strip():
        logger.warning("generation_empty_result", extra={"outcome": OutcomeKind.EMPTY_RESULT.value})
        return GenerationOutcome(kind=OutcomeKind.EMPTY_RESULT, message=MSG_EMPTY_RESULT)

    logger.info("generation_success", extra={"outcome": OutcomeKind.SUCCESS.value})
    return GenerationOutcome(kind=OutcomeKind.SUCCESS, text=text)
