from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MIN_GRADE = 1
MAX_GRADE = 12

# Six domains of the digital competence (NLS) framework lesson plans are mapped onto.
COMPETENCE_DOMAINS = [
    "Khai thác dữ liệu và thông tin",
    "Giao tiếp và Hợp tác",
    "Sáng tạo nội dung số",
    "An toàn số",
    "Giải quyết vấn đề",
    "Ứng dụng AI",
]


class Subject(str, Enum):
    TOAN = "Toán"
    NGU_VAN = "Ngữ văn"
    TIENG_ANH = "Tiếng Anh"
    VAT_LI = "Vật lí"
    HOA_HOC = "Hóa học"
    SINH_HOC = "Sinh học"
    KHTN = "Khoa học tự nhiên"
    LICH_SU = "Lịch sử"
    DIA_LI = "Địa lí"
    LICH_SU_DIA_LI = "Lịch sử và Địa lí"
    GDCD = "Giáo dục công dân"
    TIN_HOC = "Tin học"
    CONG_NGHE = "Công nghệ"
    AM_NHAC = "Âm nhạc"
    MI_THUAT = "Mĩ thuật"
    GDTC = "Giáo dục thể chất"
    HDTN = "Hoạt động trải nghiệm"


class GenerationOptions(BaseModel):
    """Switches for one generation call. Unknown keys are rejected.

    - analyze_only: report where digital competences fit, leave the plan text untouched.
    - detailed_report: append a per-activity competence report (larger token budget).
    - comparison_export: mark every change against the original so it can be diffed on export.
    - api_key: key for the generation provider; empty falls back to the server key.
    """

    model_config = ConfigDict(extra="forbid")

    analyze_only: bool = False
    detailed_report: bool = False
    comparison_export: bool = False
    api_key: str = Field(default="", repr=False)


class GenerationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    subject: Subject = Field(default=Subject.TOAN)
    grade: int = Field(7, ge=MIN_GRADE, le=MAX_GRADE)
    content: str = Field("", description="Nội dung giáo án (bắt buộc, không được rỗng)")
    distribution_content: Optional[str] = Field(
        default=None, description="Phân phối chương trình (PPCT) tham khảo, tùy chọn"
    )
    options: GenerationOptions = Field(default_factory=GenerationOptions)
