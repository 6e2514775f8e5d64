"""Tests for branch naming and validation."""

from datetime import date

import pytest

from branchsmith.branch.naming import (
    MAX_DESCRIPTION_LENGTH,
    BranchNameComponents,
    GitBranchRef,
    format_date,
    generate_branch_name,
    is_feature_branch,
    sanitize,
    sort_branches,
    truncate,
    validate_branch_name,
    validate_description,
    validate_prefix,
)


class TestFormatDate:
    """Date segment rendering."""

    @pytest.mark.parametrize("fmt, expected", [
        ("yyyyMMdd", "20240305"),
        ("yyyy-MM-dd", "2024-03-05"),
        ("yyMMdd", "240305"),
    ])
    def test_known_formats(self, fmt, expected):
        assert format_date(date(2024, 3, 5), fmt) == expected

    def test_unknown_format_falls_back(self):
        assert format_date(date(2024, 3, 5), "dd/MM") == "20240305"


class TestValidateDescription:
    def test_accepts_ascii_and_punctuation(self):
        assert validate_description("user-login_v2").is_valid

    def test_accepts_chinese(self):
        assert validate_description("用户登录").is_valid

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_rejects_empty(self, value):
        result = validate_description(value)
        assert not result.is_valid
        assert "empty" in result.error

    def test_length_limit(self):
        assert validate_description("a" * MAX_DESCRIPTION_LENGTH).is_valid
        result = validate_description("a" * (MAX_DESCRIPTION_LENGTH + 1))
        assert not result.is_valid
        assert str(MAX_DESCRIPTION_LENGTH) in result.error

    @pytest.mark.parametrize("value", [
        "user login", "a/b", "fix!", "a.b", "login\n",
    ])
    def test_rejects_other_characters(self, value):
        assert not validate_description(value).is_valid


class TestValidatePrefix:
    @pytest.mark.parametrize("value", ["feature", "fix_2", "hot-fix"])
    def test_valid(self, value):
        assert validate_prefix(value).is_valid

    @pytest.mark.parametrize("value", ["", "feat/ure", "fix it", "feat\n", None])
    def test_invalid(self, value):
        assert not validate_prefix(value).is_valid


class TestValidateBranchName:
    def test_valid_name(self):
        assert validate_branch_name("feature/20240101/login_alice").is_valid

    @pytest.mark.parametrize("name, fragment", [
        ("", "empty"),
        ("feature//login", "consecutive"),
        ("/feature/login", "start or end"),
        ("feature/login/", "start or end"),
        ("feature/log in", "spaces"),
        ("feature/log~in", "not allow"),
        ("feature/log:in", "not allow"),
        ("feature/log[in", "not allow"),
        ("feature/log\\in", "not allow"),
    ])
    def test_invalid_names(self, name, fragment):
        result = validate_branch_name(name)
        assert not result.is_valid
        assert fragment in result.error


class TestGenerateBranchName:
    def test_template(self):
        name = generate_branch_name("feature", "login", "alice", "20240101")
        assert name == "feature/20240101/login_alice"

    def test_deterministic_and_valid(self):
        first = generate_branch_name("fix", "登录", "bob", "240101")
        second = generate_branch_name("fix", "登录", "bob", "240101")
        assert first == second
        assert validate_branch_name(first).is_valid

    def test_components_name(self):
        parts = BranchNameComponents(
            prefix="fix", date="20240101", description="typo", username="al"
        )
        assert parts.name == "fix/20240101/typo_al"


def test_sanitize_and_truncate():
    assert sanitize("user login! v2") == "userloginv2"
    assert truncate("x" * 80) == "x" * MAX_DESCRIPTION_LENGTH
    assert truncate("short", 10) == "short"


def test_sort_branches_current_then_local_then_remote():
    refs = [
        GitBranchRef(name="origin/main", is_remote=True),
        GitBranchRef(name="zeta"),
        GitBranchRef(name="main"),
        GitBranchRef(name="work", is_current=True),
        GitBranchRef(name="origin/alpha", is_remote=True),
    ]
    assert [r.name for r in sort_branches(refs)] == [
        "work", "main", "zeta", "origin/alpha", "origin/main",
    ]


@pytest.mark.parametrize("name, expected", [
    ("feature/20240101/x_a", True),
    ("Feature/20240101/x_a", True),
    ("fix/x", True),
    ("featurex/y", False),
    ("main", False),
])
def test_is_feature_branch(name, expected):
    assert is_feature_branch(name, ["feature", "fix"]) is expected
