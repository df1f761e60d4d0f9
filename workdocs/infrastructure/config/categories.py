"""Workday document categories a run can file documents under."""

from dataclasses import dataclass
from typing import List, Optional

from workdocs.domain.models.common import CategoryWid


@dataclass(frozen=True)
class DocumentCategory:
    name: str
    wid: CategoryWid


DOCUMENT_CATEGORIES: List[DocumentCategory] = [
    DocumentCategory("Compensation", CategoryWid("7166a581648910019e415635dd8e0000")),
    DocumentCategory("Outside Engagement", CategoryWid("cb0535d1d7d7100c1c87419eee330000")),
    DocumentCategory("Offboarding", CategoryWid("7166a581648910019e415502acf90000")),
    DocumentCategory("Disciplinary Action", CategoryWid("cb0535d1d7d7100c1c874104f9e80000")),
    DocumentCategory("Confidentiality Agreement", CategoryWid("cb0535d1d7d7100c1c87423894700001")),
    DocumentCategory("Termination", CategoryWid("cb0535d1d7d7100c1c8742d2883c0000")),
    DocumentCategory("Offer of Employment", CategoryWid("cb0535d1d7d7100c1c8742d2883c0001")),
    DocumentCategory("Student Loan", CategoryWid("cb0535d1d7d7100c1c87436c64150000")),
    DocumentCategory("Employment Contract", CategoryWid("cb0535d1d7d7100c1c87440632970000")),
    DocumentCategory("Hire and Recruitment documents", CategoryWid("c1d7f7601fc31001e8eebfaefe830000")),
    DocumentCategory("Other Documents", CategoryWid("69e113544dfe100002fc6609f6eb006d")),
    DocumentCategory("Pension and Insurance", CategoryWid("7166a581648910019e41559c42f60001")),
    DocumentCategory("Termination Agreement", CategoryWid("7166a581648910019e41559c42f60000")),
]


def find_category(category_wid: str) -> Optional[DocumentCategory]:
    """Returns the category with the given WID, or None."""
    return next((c for c in DOCUMENT_CATEGORIES if c.wid == category_wid), None)


def find_category_by_name(name: str) -> Optional[DocumentCategory]:
    """Case-insensitive lookup by display name."""
    wanted = name.strip().lower()
    return next((c for c in DOCUMENT_CATEGORIES if c.name.lower() == wanted), None)
