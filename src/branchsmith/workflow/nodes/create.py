"""Branch creation nodes.

SelectPrefix -> SelectBaseBranch -> ResolveAuthor -> EnterDescription
    -> CheckExisting -> ConfirmCreation -> CreateBranch -> End

CheckExisting loops back to EnterDescription when the user wants to
try another description.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from branchsmith.branch.naming import (
    BranchNameComponents,
    format_date,
    sanitize,
    sort_branches,
    truncate,
    validate_branch_name,
    validate_description,
)
from branchsmith.core.errors import PreconditionFailed, UserCancelled
from branchsmith.core.log import logger
from branchsmith.core.result import WorkflowResult
from branchsmith.workflow.deps import WorkflowDeps
from branchsmith.workflow.state import CreateSession

CHECKOUT_EXISTING = "Check out existing branch"
REENTER_DESCRIPTION = "Enter a different description"
CANCEL = "Cancel"
CONFIRM = "Create"

CreateContext = GraphRunContext[CreateSession, WorkflowDeps]


@dataclass
class SelectPrefix(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    async def run(self, ctx: CreateContext) -> SelectBaseBranch:
        session, deps = ctx.state, ctx.deps
        if not deps.inspector.is_repository():
            raise PreconditionFailed("Not inside a git repository")

        branch = deps.settings().branch
        if not branch.prefixes:
            raise PreconditionFailed(
                "No branch prefixes are configured; add one with "
                "'branchsmith prefixes --add'"
            )

        if len(branch.prefixes) == 1:
            session.prefix = branch.prefixes[0].prefix
        else:
            default = branch.default_prefix()
            names = [default.prefix] + [
                p.prefix for p in branch.prefixes if p is not default
            ]
            session.prefix = await deps.prompter.select(names, "Branch prefix")
            if session.prefix is None:
                raise UserCancelled("No prefix selected")

        return SelectBaseBranch()


@dataclass
class SelectBaseBranch(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    async def run(self, ctx: CreateContext) -> ResolveAuthor:
        session, deps = ctx.state, ctx.deps
        refs = sort_branches(deps.inspector.list_branches())
        if not refs:
            raise PreconditionFailed("The repository has no branches yet")

        session.base_branch = await deps.prompter.select(
            [ref.name for ref in refs], "Base branch"
        )
        if session.base_branch is None:
            raise UserCancelled("No base branch selected")
        return ResolveAuthor()


@dataclass
class ResolveAuthor(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    """Author segment: the configured override, else git's user.name."""

    async def run(self, ctx: CreateContext) -> EnterDescription:
        session, deps = ctx.state, ctx.deps
        author = deps.settings().branch.custom_git_name
        if not author:
            author = deps.inspector.user_name()
        if not author:
            raise PreconditionFailed(
                "Could not determine the author name; set git config "
                "user.name or branch.custom_git_name"
            )
        session.author = author.strip()
        return EnterDescription()


@dataclass
class EnterDescription(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    async def run(self, ctx: CreateContext) -> CheckExisting:
        session, deps = ctx.state, ctx.deps
        branch = deps.settings().branch
        session.date = format_date(deps.today(), branch.date_format)
        session.description_attempts += 1

        def validate(value: str) -> str | None:
            result = validate_description(value)
            if not result.is_valid:
                suggestion = truncate(sanitize(value or ""))
                if suggestion and suggestion != value:
                    return f"{result.error} (e.g. '{suggestion}')"
                return result.error
            preview = components(value).name
            result = validate_branch_name(preview)
            return None if result.is_valid else result.error

        def components(description: str) -> BranchNameComponents:
            return BranchNameComponents(
                prefix=session.prefix,
                date=session.date,
                description=description,
                username=session.author,
            )

        description = await deps.prompter.input(
            "Branch description",
            placeholder="user-login",
            validator=validate,
        )
        if description is None:
            raise UserCancelled("No description entered")

        session.description = description
        session.branch_name = components(description).name
        return CheckExisting()


@dataclass
class CheckExisting(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    """Offer the existing branch when the composed name is taken."""

    async def run(
        self, ctx: CreateContext
    ) -> ConfirmCreation | EnterDescription | End[WorkflowResult]:
        session, deps = ctx.state, ctx.deps
        name = session.branch_name
        if not deps.inspector.local_branch_exists(name):
            return ConfirmCreation()

        options = [CHECKOUT_EXISTING]
        max_attempts = deps.settings().branch.max_description_attempts
        if session.description_attempts < max_attempts:
            options.append(REENTER_DESCRIPTION)
        options.append(CANCEL)

        choice = await deps.prompter.confirm(
            f"Branch '{name}' already exists", options
        )
        if choice == CHECKOUT_EXISTING:
            deps.lifecycle.checkout(name)
            logger.info("Checked out existing branch", branch=name)
            return End(
                WorkflowResult.completed(
                    f"Switched to existing branch '{name}'", branch=name
                )
            )
        if choice == REENTER_DESCRIPTION:
            return EnterDescription()
        raise UserCancelled("Branch creation cancelled")


@dataclass
class ConfirmCreation(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    async def run(self, ctx: CreateContext) -> CreateBranch:
        session, deps = ctx.state, ctx.deps
        summary = "\n".join([
            f"Base branch: {session.base_branch}",
            f"New branch:  {session.branch_name}",
            f"Description: {session.description}",
            f"Author:      {session.author}",
        ])
        choice = await deps.prompter.confirm(
            f"Create this branch?\n{summary}", [CONFIRM, CANCEL]
        )
        if choice != CONFIRM:
            raise UserCancelled("Branch creation cancelled")
        return CreateBranch()


@dataclass
class CreateBranch(BaseNode[CreateSession, WorkflowDeps, WorkflowResult]):
    async def run(self, ctx: CreateContext) -> End[WorkflowResult]:
        session, deps = ctx.state, ctx.deps
        checkout = deps.settings().branch.auto_checkout
        deps.lifecycle.create_branch(
            session.branch_name, session.base_branch, checkout=checkout
        )
        suffix = " and checked it out" if checkout else ""
        return End(
            WorkflowResult.completed(
                f"Created branch '{session.branch_name}'{suffix}",
                branch=session.branch_name,
            )
        )
