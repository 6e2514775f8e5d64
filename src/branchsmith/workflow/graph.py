"""Workflow graph definitions."""

from functools import cache

from pydantic_graph import Graph, GraphBuilder

from branchsmith.core.log import logger
from branchsmith.core.result import WorkflowResult
from branchsmith.workflow.deps import WorkflowDeps
from branchsmith.workflow.state import CreateSession, MergeSession


@cache
def merge_graph() -> Graph:
    """PrepareEnvironment -> SelectTarget -> MergeIntoTarget ->
    [ResolveConflicts] -> PushTarget -> RestoreOriginalBranch -> End

    Run with inputs=PrepareEnvironment().
    """
    logger.debug("Building merge graph")

    from branchsmith.workflow.nodes.merge import (
        MergeIntoTarget,
        PrepareEnvironment,
        PushTarget,
        ResolveConflicts,
        RestoreOriginalBranch,
        SelectTarget,
    )

    g = GraphBuilder(
        name="merge",
        state_type=MergeSession,
        deps_type=WorkflowDeps,
        input_type=PrepareEnvironment,
        output_type=WorkflowResult,
    )
    g.add(
        g.edge_from(g.start_node).to(PrepareEnvironment),
        g.node(PrepareEnvironment),
        g.node(SelectTarget),
        g.node(MergeIntoTarget),
        g.node(ResolveConflicts),
        g.node(PushTarget),
        g.node(RestoreOriginalBranch),
    )
    return g.build()


@cache
def create_graph() -> Graph:
    """SelectPrefix -> SelectBaseBranch -> ResolveAuthor ->
    EnterDescription -> CheckExisting -> ConfirmCreation ->
    CreateBranch -> End

    Run with inputs=SelectPrefix().
    """
    logger.debug("Building branch creation graph")

    from branchsmith.workflow.nodes.create import (
        CheckExisting,
        ConfirmCreation,
        CreateBranch,
        EnterDescription,
        ResolveAuthor,
        SelectBaseBranch,
        SelectPrefix,
    )

    g = GraphBuilder(
        name="create_branch",
        state_type=CreateSession,
        deps_type=WorkflowDeps,
        input_type=SelectPrefix,
        output_type=WorkflowResult,
    )
    g.add(
        g.edge_from(g.start_node).to(SelectPrefix),
        g.node(SelectPrefix),
        g.node(SelectBaseBranch),
        g.node(ResolveAuthor),
        g.node(EnterDescription),
        g.node(CheckExisting),
        g.node(ConfirmCreation),
        g.node(CreateBranch),
    )
    return g.build()
