"""Orchestrator for a single PR agent run.

Pipeline: workspace -> baseline tests -> patch -> apply -> verify -> publish.
Publishing happens only after the verification run passes; every other
path ends without touching the remote.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .agent_modules.config import AgentConfig
from .agent_modules.data_types import (
    ErrorResult,
    NeedsLLMResult,
    Patch,
    RunResult,
    SuccessResult,
    TestResult,
    VerifyFailedResult,
    Workspace,
)
from .agent_modules.executor import apply_changes
from .agent_modules.planner import PatchProvider
from .agent_modules.publisher import Publisher, build_pr_body, pr_title
from .agent_modules.utils import close_logger, make_run_id, setup_logger
from .agent_modules.verifier import TestRunner
from .agent_modules.workspace import WorkspaceManager


class PRAgent:
    """Runs the fix pipeline once per ``run`` call and returns one RunResult."""

    def __init__(
        self,
        config: AgentConfig,
        workspace_manager: Optional[WorkspaceManager] = None,
        test_runner: Optional[TestRunner] = None,
        patch_provider: Optional[PatchProvider] = None,
        publisher: Optional[Publisher] = None,
        run_id: Optional[str] = None,
    ):
        self.config = config
        self.workspace_manager = workspace_manager or WorkspaceManager(config)
        self.test_runner = test_runner or TestRunner(config)
        self.patch_provider = patch_provider or PatchProvider(config)
        self.publisher = publisher or Publisher(config)
        self.run_id = run_id or make_run_id()
        self.logger = logging.getLogger(__name__)

    async def run(self, repo_location: str, goal: str) -> RunResult:
        """Execute the pipeline for ``repo_location`` and ``goal``.

        Unexpected exceptions are logged and returned as an ``error`` result;
        the workspace is kept on disk for inspection. The run log is closed
        before returning.
        """
        self.logger = setup_logger(self.run_id, self.config.log_root, self.config.log_level)
        self.logger.info(f"Repository: {repo_location}")
        self.logger.info(f"Goal: {goal}")

        workspace: Optional[Workspace] = None
        try:
            self.logger.info("[1/7] Preparing workspace")
            workspace = self.workspace_manager.materialize(repo_location)
            self.logger.info(f"Repository ready at {workspace.repo_dir}")
            return await self._run_in_workspace(workspace, goal)
        except Exception as exc:
            work_dir = str(workspace.root_dir) if workspace else None
            self.logger.exception(f"Run failed: {exc}")
            if work_dir:
                self.logger.error(f"Workspace preserved at: {work_dir}")
            return ErrorResult(message=str(exc), cause=type(exc).__name__, work_dir=work_dir)
        finally:
            close_logger(self.logger)

    async def _run_in_workspace(self, workspace: Workspace, goal: str) -> RunResult:
        repo_dir = workspace.repo_dir

        self.logger.info("[2/7] Running baseline tests")
        baseline = self.test_runner.run(repo_dir)
        self.logger.info(f"Baseline tests {'passing' if baseline.success else 'failing'}")

        self.logger.info("[3/7] Planning fix")
        patch = self.patch_provider.provide(repo_dir, goal, baseline.output)
        if patch is None:
            patch = await self.patch_provider.provide_external(repo_dir, goal, baseline.output)

        if patch is None:
            plan = self.patch_provider.generate_plan(repo_dir, goal, baseline.output)
            self.logger.warning("No patch available; external intervention required")
            self.logger.info(f"Target file: {plan.files[0]}")
            return NeedsLLMResult(
                plan=plan,
                repo_path=str(repo_dir),
                work_dir=str(workspace.root_dir),
                baseline_result=baseline,
            )
        self.logger.info(f"Plan: {patch.summary}")

        self.logger.info("[4/7] Applying fix")
        apply_changes(patch)
        self.logger.info(f"File modified: {patch.target_file.name}")

        self.logger.info("[5/7] Verifying fix")
        verify = self.test_runner.run(repo_dir)
        if not verify.success:
            self.logger.warning(f"Tests still failing; nothing published. Workspace kept at {workspace.root_dir}")
            return VerifyFailedResult(output=verify.output, work_dir=str(workspace.root_dir))
        self.logger.info("Tests now passing")

        return self._publish(workspace, patch, baseline, verify)

    def _publish(self, workspace: Workspace, patch: Patch, baseline: TestResult, verify: TestResult) -> SuccessResult:
        repo_dir = workspace.repo_dir

        self.logger.info("[6/7] Committing and pushing")
        branch_name = self.publisher.create_branch(repo_dir)
        self.publisher.commit(repo_dir, patch.summary)
        self.publisher.push(repo_dir, branch_name)

        self.logger.info("[7/7] Opening pull request")
        repo_info = self.publisher.repo_info(repo_dir)
        pr = self.publisher.open_pull_request(
            repo_info,
            branch_name,
            pr_title(patch.summary),
            build_pr_body(patch, baseline, verify),
        )

        self.workspace_manager.teardown(workspace)

        return SuccessResult(
            pr_data=pr.payload,
            pr_url=pr.url,
            pr_number=pr.number,
            created_via_api=pr.created_via_api,
            branch_name=branch_name,
            repo_info=repo_info,
        )


def run_agent(repo_location: str, goal: str, config: Optional[AgentConfig] = None) -> RunResult:
    """Synchronous entry point: build the config if needed and run once."""

    agent = PRAgent(config or AgentConfig.from_env())
    return asyncio.run(agent.run(repo_location, goal))


__all__ = ["PRAgent", "run_agent"]
