"""Branch naming and validation.

Branch names follow the convention::

    <prefix>/<date>/<description>_<author>

e.g. ``feature/20240315/login-page_alice``. Everything here is pure:
no git access, no configuration lookups.
"""

import re
from collections.abc import Iterable
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from branchsmith.core.result import ValidationResult

MAX_DESCRIPTION_LENGTH = 50

DATE_FORMATS = {
    'yyyyMMdd': '%Y%m%d',
    'yyyy-MM-dd': '%Y-%m-%d',
    'yyMMdd': '%y%m%d',
}
DEFAULT_DATE_FORMAT = 'yyyyMMdd'

# ASCII letters, digits, CJK unified ideographs, underscore, hyphen
_DESCRIPTION_CHARS = r'A-Za-z0-9\u4e00-\u9fa5_-'
_DESCRIPTION_RE = re.compile(rf'[{_DESCRIPTION_CHARS}]+')
_DESCRIPTION_STRIP_RE = re.compile(rf'[^{_DESCRIPTION_CHARS}]')
_PREFIX_RE = re.compile(r'[A-Za-z0-9_-]+')
_FORBIDDEN_REF_CHARS = re.compile(r'[~^:?*\[\]\\]')
_WHITESPACE = re.compile(r'\s')


class BranchNameComponents(BaseModel):
    """The four parts of a conventional branch name."""

    prefix: str
    date: str
    description: str
    username: str

    @property
    def name(self) -> str:
        return generate_branch_name(
            self.prefix, self.description, self.username, self.date
        )


class GitBranchRef(BaseModel):
    """Snapshot of one branch as enumerated from the repository."""

    model_config = ConfigDict(frozen=True)

    name: str
    is_current: bool = False
    is_remote: bool = False
    commit: str = ""


def format_date(now: date | datetime, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    """Render the date segment. Unknown formats use yyyyMMdd."""
    pattern = DATE_FORMATS.get(fmt, DATE_FORMATS[DEFAULT_DATE_FORMAT])
    return now.strftime(pattern)


def validate_description(description: str | None) -> ValidationResult:
    if not description or not description.strip():
        return ValidationResult.fail("Description must not be empty")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return ValidationResult.fail(
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    if not _DESCRIPTION_RE.fullmatch(description):
        return ValidationResult.fail(
            "Description may only contain letters, digits, Chinese "
            "characters, '_' and '-'"
        )
    return ValidationResult.ok()


def validate_prefix(prefix: str | None) -> ValidationResult:
    if not prefix or not prefix.strip():
        return ValidationResult.fail("Prefix must not be empty")
    if not _PREFIX_RE.fullmatch(prefix):
        return ValidationResult.fail(
            "Prefix may only contain letters, digits, '_' and '-'"
        )
    return ValidationResult.ok()


def validate_branch_name(name: str | None) -> ValidationResult:
    """Reject the names git would refuse or that break the naming
    convention."""
    if not name or not name.strip():
        return ValidationResult.fail("Branch name must not be empty")
    if '//' in name:
        return ValidationResult.fail(
            "Branch name must not contain consecutive slashes"
        )
    if name.startswith('/') or name.endswith('/'):
        return ValidationResult.fail(
            "Branch name must not start or end with a slash"
        )
    if _WHITESPACE.search(name):
        return ValidationResult.fail("Branch name must not contain spaces")
    if _FORBIDDEN_REF_CHARS.search(name):
        return ValidationResult.fail(
            "Branch name contains characters git does not allow "
            "(~ ^ : ? * [ ] \\)"
        )
    return ValidationResult.ok()


def generate_branch_name(
    prefix: str, description: str, username: str, date: str
) -> str:
    return f"{prefix}/{date}/{description}_{username}"


def sanitize(text: str) -> str:
    """Drop every character a description may not contain."""
    return _DESCRIPTION_STRIP_RE.sub('', text)


def truncate(text: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    return text[:max_length]


def sort_branches(refs: Iterable[GitBranchRef]) -> list[GitBranchRef]:
    """Current branch first, then local branches, then remote ones,
    each group by name."""
    return sorted(
        refs,
        key=lambda ref: (not ref.is_current, ref.is_remote, ref.name),
    )


def is_feature_branch(name: str, prefixes: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(lowered.startswith(f"{p.lower()}/") for p in prefixes)


__all__ = [
    "BranchNameComponents",
    "GitBranchRef",
    "format_date",
    "validate_description",
    "validate_prefix",
    "validate_branch_name",
    "generate_branch_name",
    "sanitize",
    "truncate",
    "sort_branches",
    "is_feature_branch",
]
