"""Merge workflow scenarios against an in-memory repository."""

import asyncio

from branchsmith.core.result import WorkflowStatus
from branchsmith.core.singleflight import SingleFlight
from branchsmith.workflow.nodes.merge import (
    ABORT_MERGE,
    CANCEL,
    COMMIT_AND_PUSH,
    COMMIT_RESOLUTION,
    OPEN_FIRST_FILE,
    RECHECK,
    RESOLVE_MANUALLY,
)
from branchsmith.workflow.orchestrator import MergeOrchestrator
from branchsmith.workflow.state import MergePhase, MergeSession

FEATURE = "feature/20240115/login_alice"


def run_merge(deps, guard=None):
    orchestrator = MergeOrchestrator(deps, guard or SingleFlight())
    return asyncio.run(orchestrator.run())


def test_clean_merge_pushes_target_and_restores(repo, make_deps):
    deps, prompter = make_deps(repo, ["uat"])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.COMPLETED
    assert result.exit_code == 0
    assert result.branch == "uat"
    assert repo.calls == [
        ("ensure_remote_branch", FEATURE),
        ("checkout", "uat"),
        ("ensure_upstream", "uat"),
        ("pull", "uat"),
        ("merge", FEATURE),
        ("push", "uat", False),
        ("checkout", FEATURE),
        ("ensure_upstream", FEATURE),
    ]
    assert repo.current == FEATURE
    assert prompter.notices[-1][0] == "success"


def test_target_offered_in_configured_order(repo, make_deps):
    deps, prompter = make_deps(repo, ["pre"])

    run_merge(deps)

    kind, _prompt, options = prompter.asked[0]
    assert kind == "select"
    assert options == ["uat", "pre", "test"]


def test_new_target_is_published_with_upstream(make_repo, make_deps):
    repo = make_repo(remote_branches={FEATURE})
    deps, _ = make_deps(repo, ["uat"])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.COMPLETED
    assert ("pull", "uat") not in repo.calls
    assert ("push", "uat", True) in repo.calls


def test_conflicts_then_abort_restores_original(make_repo, make_deps):
    repo = make_repo(conflicts_on={"uat"})
    deps, prompter = make_deps(repo, ["uat", ABORT_MERGE])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert result.exit_code == 1
    assert "aborted" in result.message
    assert repo.ops("abort_merge") == [("abort_merge",)]
    assert repo.ops("push") == []
    assert repo.current == FEATURE

    _kind, message, options = prompter.asked[-1]
    assert "a.ts" in message and "b.ts" in message
    assert options == [OPEN_FIRST_FILE, ABORT_MERGE, RESOLVE_MANUALLY]


def test_dismissing_conflict_menu_aborts_and_cancels(make_repo, make_deps):
    repo = make_repo(conflicts_on={"uat"})
    deps, _ = make_deps(repo, ["uat", None])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.CANCELLED
    assert result.exit_code == 0
    assert repo.ops("abort_merge")
    assert repo.current == FEATURE


def test_open_first_file_leaves_merge_in_progress(make_repo, make_deps):
    repo = make_repo(conflicts_on={"uat"})
    deps, _ = make_deps(repo, ["uat", OPEN_FIRST_FILE])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.CANCELLED
    assert repo.ops("open_file") == [
        ("open_file", "${VISUAL:-${EDITOR:-vi}}", "a.ts")
    ]
    assert repo.ops("abort_merge") == []
    assert repo.current == "uat"


def test_manual_resolution_commits_and_pushes(make_repo, make_deps):
    repo = make_repo(conflicts_on={"uat"})

    def resolve():
        repo.conflicts = []
        return RECHECK

    deps, prompter = make_deps(
        repo, ["uat", RESOLVE_MANUALLY, resolve, COMMIT_RESOLUTION]
    )

    result = run_merge(deps)

    assert result.status == WorkflowStatus.COMPLETED
    assert repo.ops("commit") == [("commit", "fix: resolve merge conflicts")]
    assert ("push", "uat", False) in repo.calls
    assert repo.current == FEATURE


def test_declining_resolution_commit_aborts(make_repo, make_deps):
    repo = make_repo(conflicts_on={"uat"})

    def resolve():
        repo.conflicts = []
        return RECHECK

    deps, _ = make_deps(repo, ["uat", RESOLVE_MANUALLY, resolve, CANCEL])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.CANCELLED
    assert repo.ops("commit") == []
    assert repo.ops("abort_merge") == [("abort_merge",)]
    assert repo.current == FEATURE


def test_polling_gives_up_after_configured_attempts(
    make_repo, make_deps, build_config
):
    repo = make_repo(conflicts_on={"uat"})
    config = build_config(conflict_poll_attempts=3)
    deps, prompter = make_deps(
        repo,
        ["uat", RESOLVE_MANUALLY, RECHECK, RECHECK, RECHECK],
        settings=lambda: config,
    )

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert "3 checks" in result.message
    assert repo.ops("abort_merge") == [("abort_merge",)]
    assert repo.current == FEATURE
    rechecks = [a for a in prompter.asked if a[0] == "confirm"][1:]
    assert [a[1].split(":")[0] for a in rechecks] == [
        "Conflicts remain (1/3)",
        "Conflicts remain (2/3)",
        "Conflicts remain (3/3)",
    ]


def test_settings_are_read_fresh_at_each_step(
    make_repo, make_deps, build_config
):
    repo = make_repo(conflicts_on={"uat"})
    holder = {"config": build_config()}

    def change_settings():
        holder["config"] = build_config(
            conflict_commit_message="fix: merge uat"
        )
        return "uat"

    def resolve():
        repo.conflicts = []
        return RECHECK

    deps, _ = make_deps(
        repo,
        [change_settings, RESOLVE_MANUALLY, resolve, COMMIT_RESOLUTION],
        settings=lambda: holder["config"],
    )

    run_merge(deps)

    assert repo.ops("commit") == [("commit", "fix: merge uat")]


def test_uncommitted_changes_are_committed_first(make_repo, make_deps):
    repo = make_repo(dirty=True)
    deps, prompter = make_deps(
        repo, [COMMIT_AND_PUSH, "add login form", "uat"]
    )

    result = run_merge(deps)

    assert result.status == WorkflowStatus.COMPLETED
    assert repo.calls[:3] == [
        ("ensure_remote_branch", FEATURE),
        ("commit", "feat: add login form"),
        ("push", FEATURE, False),
    ]


def test_invalid_commit_message_is_asked_again(make_repo, make_deps):
    repo = make_repo(dirty=True)
    deps, prompter = make_deps(
        repo, [COMMIT_AND_PUSH, "x" * 101, "short", "uat"]
    )

    run_merge(deps)

    assert len(prompter.rejected) == 1
    assert ("commit", "feat: short") in repo.calls


def test_declining_commit_cancels_without_touching_target(
    make_repo, make_deps
):
    repo = make_repo(dirty=True)
    deps, _ = make_deps(repo, [CANCEL])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.CANCELLED
    assert repo.ops("checkout") == []
    assert repo.ops("merge") == []


def test_non_feature_branch_is_refused(make_repo, make_deps):
    repo = make_repo(current="main")
    deps, prompter = make_deps(repo)

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert "not a feature branch" in result.message
    assert "feature/*" in result.message
    assert repo.calls == []
    assert prompter.asked == []


def test_detached_head_is_refused(make_repo, make_deps):
    repo = make_repo(current=None)
    deps, _ = make_deps(repo)

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert "detached" in result.message


def test_outside_repository_is_refused(repo, make_deps):
    repo.repository = False
    deps, _ = make_deps(repo)

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert "git repository" in result.message


def test_no_targets_configured(repo, make_deps, build_config):
    config = build_config(target_branches=[])
    deps, _ = make_deps(repo, settings=lambda: config)

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert "No target branches" in result.message


def test_push_failure_rolls_back(repo, make_deps):
    repo.fail_push = True
    deps, _ = make_deps(repo, ["uat"])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert "non-fast-forward" in result.message
    assert repo.current == FEATURE


def test_restore_failure_names_manual_command(repo, make_deps):
    repo.fail_checkout_of = {FEATURE}
    deps, _ = make_deps(repo, ["uat"])

    result = run_merge(deps)

    assert result.status == WorkflowStatus.FAILED
    assert f"git checkout {FEATURE}" in result.message
    assert ("push", "uat", False) in repo.calls


def test_second_merge_is_rejected_while_first_waits(make_repo, make_deps):
    guard = SingleFlight()
    nested = {}
    second_repo = make_repo()
    second_deps, second_prompter = make_deps(second_repo)

    async def start_second_merge():
        nested["result"] = await MergeOrchestrator(second_deps, guard).run()
        return "uat"

    repo = make_repo()
    deps, _ = make_deps(repo, [start_second_merge])

    result = run_merge(deps, guard)

    assert result.status == WorkflowStatus.COMPLETED
    assert nested["result"].status == WorkflowStatus.REJECTED
    assert nested["result"].exit_code == 2
    assert second_repo.calls == []
    assert second_prompter.notices[0][0] == "warn"
    assert not guard.busy


def test_guard_released_after_failure(make_repo, make_deps):
    guard = SingleFlight()
    deps, _ = make_deps(make_repo(current="main"))

    run_merge(deps, guard)

    assert not guard.busy


def run_with_session(deps):
    session = MergeSession()
    orchestrator = MergeOrchestrator(deps, SingleFlight())
    result = asyncio.run(orchestrator.run_held(session))
    return result, session


def test_phase_trail_on_success(repo, make_deps):
    deps, _ = make_deps(repo, ["uat"])

    _, session = run_with_session(deps)

    assert session.history == [
        MergePhase.PREPARING_ENVIRONMENT,
        MergePhase.SELECTING_TARGET,
        MergePhase.MERGING,
        MergePhase.PUSHING,
        MergePhase.RESTORING_ORIGINAL_BRANCH,
        MergePhase.COMPLETED,
    ]


def test_rollback_enters_restoring_phase_before_failing(repo, make_deps):
    repo.fail_push = True
    deps, _ = make_deps(repo, ["uat"])

    result, session = run_with_session(deps)

    assert result.status == WorkflowStatus.FAILED
    assert session.history[-3:] == [
        MergePhase.PUSHING,
        MergePhase.RESTORING_ORIGINAL_BRANCH,
        MergePhase.FAILED,
    ]
