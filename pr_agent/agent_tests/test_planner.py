"""Tests for the Patch Provider strategies and fallback plan."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from pr_agent.agent_modules.planner import (
    BUILTIN_PATCHES,
    BuiltinPatch,
    PatchProvider,
    PlanningError,
    build_prompt,
    find_relevant_files,
)

from conftest import write_date_project

DATE_GOAL = "Fix the failing test in utils/date.js"


@pytest.fixture
def project(tmp_path):
    repo = tmp_path / "project"
    repo.mkdir()
    write_date_project(repo)
    return repo


def provider_with_reply(config, reply):
    llm_client = MagicMock()
    llm_client.complete = AsyncMock(return_value=reply)
    return PatchProvider(config, llm_client=llm_client), llm_client


class TestFindRelevantFiles:
    def test_mentioned_file_wins(self, project):
        assert find_relevant_files(project, DATE_GOAL) == [project / "utils" / "date.js"]

    def test_mentioned_but_missing_file_falls_back_to_listing(self, project):
        files = find_relevant_files(project, "Fix lib/missing.js")

        assert files == [project / "test.js", project / "utils" / "date.js"]

    def test_listing_is_capped_and_skips_node_modules(self, tmp_path):
        for index in range(8):
            (tmp_path / f"m{index}.js").write_text("")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "a.js").write_text("")

        files = find_relevant_files(tmp_path, "make it work")

        assert len(files) == 5
        assert all("node_modules" not in str(path) for path in files)

    def test_empty_repository(self, tmp_path):
        assert find_relevant_files(tmp_path, "anything") == []


class TestDeterministicPatch:
    def test_marker_yields_validated_patch(self, project, agent_config):
        patch = PatchProvider(agent_config).provide(project, DATE_GOAL, "baseline")

        builtin = BUILTIN_PATCHES[0]
        assert patch.target_file == (project / "utils" / "date.js").resolve()
        assert patch.old_fragment == builtin.old_code
        assert patch.new_fragment == builtin.new_code
        assert patch.summary == builtin.summary

    def test_unknown_goal_yields_none(self, project, agent_config):
        assert PatchProvider(agent_config).provide(project, "Speed up the build", "") is None

    def test_drifted_repository_yields_none(self, project, agent_config, caplog):
        (project / "utils" / "date.js").write_text("// already fixed\n")

        assert PatchProvider(agent_config).provide(project, DATE_GOAL, "") is None
        assert "old_code_not_found" in caplog.text

    def test_custom_registry(self, project, agent_config):
        builtin = BuiltinPatch(
            marker="GREETING",
            relative_path="test.js",
            old_code="All tests passed",
            new_code="Everything passed",
            summary="Reword greeting",
        )

        patch = PatchProvider(agent_config, builtin_patches=(builtin,)).provide(project, "fix GREETING", "")

        assert patch.summary == "Reword greeting"


class TestExternalPatch:
    @pytest.mark.asyncio
    async def test_valid_reply_becomes_patch(self, project, agent_config):
        config = agent_config.model_copy(update={"llm_api_key": "sk-test"})
        reply = json.dumps(
            {
                "summary": "Add days",
                "file": "utils/date.js",
                "oldCode": "  result.setDate(days);",
                "newCode": "  result.setDate(result.getDate() + days);",
            }
        )
        provider, llm_client = provider_with_reply(config, reply)

        patch = await provider.provide_external(project, DATE_GOAL, "AssertionError: 5 !== 15")

        assert patch.summary == "Add days"
        assert patch.target_file.is_absolute()
        system_prompt, user_prompt = llm_client.complete.call_args.args
        assert "JSON" in system_prompt
        assert DATE_GOAL in user_prompt
        assert "result.setDate(days);" in user_prompt
        assert "AssertionError: 5 !== 15" in user_prompt

    @pytest.mark.asyncio
    async def test_invalid_reply_is_logged_and_rejected(self, project, agent_config, caplog):
        config = agent_config.model_copy(update={"llm_api_key": "sk-test"})
        provider, _ = provider_with_reply(config, json.dumps({"summary": "x", "file": "/etc/passwd"}))

        assert await provider.provide_external(project, DATE_GOAL, "") is None
        assert "External patch rejected [missing_field:oldCode]" in caplog.text

    @pytest.mark.asyncio
    async def test_unavailable_service_resolves_to_none(self, project, agent_config):
        config = agent_config.model_copy(update={"llm_api_key": "sk-test"})
        provider, _ = provider_with_reply(config, None)

        assert await provider.provide_external(project, DATE_GOAL, "") is None

    @pytest.mark.asyncio
    async def test_no_credentials_skips_the_service(self, project, agent_config):
        provider, llm_client = provider_with_reply(agent_config, "{}")

        assert await provider.provide_external(project, DATE_GOAL, "") is None
        llm_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_candidate_files(self, tmp_path, agent_config):
        config = agent_config.model_copy(update={"llm_api_key": "sk-test"})
        provider, llm_client = provider_with_reply(config, "{}")

        assert await provider.provide_external(tmp_path, "anything", "") is None
        llm_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecodable_candidate_is_skipped(self, tmp_path, agent_config, caplog):
        config = agent_config.model_copy(update={"llm_api_key": "sk-test"})
        (tmp_path / "legacy.js").write_bytes(b"\xff\xfe var x = 1;")
        provider, llm_client = provider_with_reply(config, "{}")

        assert await provider.provide_external(tmp_path, "make it work", "") is None
        llm_client.complete.assert_not_called()
        assert "undecodable_file" in caplog.text


class TestGeneratePlan:
    def test_plan_bundles_files_and_output(self, project, agent_config):
        plan = PatchProvider(agent_config).generate_plan(project, "Make tests green", "baseline output")

        assert plan.files == [str(project / "test.js"), str(project / "utils" / "date.js")]
        assert plan.file_contents[str(project / "utils" / "date.js")].startswith("function addDays")
        assert plan.test_output == "baseline output"
        assert plan.goal == "Make tests green"
        assert plan.needs_llm is True

    def test_plan_serializes_with_camel_case_keys(self, project, agent_config):
        plan = PatchProvider(agent_config).generate_plan(project, DATE_GOAL, "out")

        payload = plan.model_dump(by_alias=True)

        assert set(payload) == {"files", "fileContents", "testOutput", "goal", "needsLLM"}

    def test_undecodable_candidate_is_still_listed(self, tmp_path, agent_config):
        (tmp_path / "a.js").write_bytes(b"\xff\xfe var x = 1;")
        (tmp_path / "b.js").write_text("var y = 2;\n")

        plan = PatchProvider(agent_config).generate_plan(tmp_path, "make it work", "out")

        assert plan.files == [str(tmp_path / "a.js"), str(tmp_path / "b.js")]
        assert plan.file_contents[str(tmp_path / "a.js")].endswith("var x = 1;")
        assert "\ufffd" in plan.file_contents[str(tmp_path / "a.js")]
        assert plan.file_contents[str(tmp_path / "b.js")] == "var y = 2;\n"

    def test_no_candidate_files_raises(self, tmp_path, agent_config):
        with pytest.raises(PlanningError, match="No relevant files found"):
            PatchProvider(agent_config).generate_plan(tmp_path, "anything", "")


def test_build_prompt_names_required_fields():
    prompt = build_prompt("goal", "a/b.js", "content", "output")

    for field in ('"summary"', '"file"', '"oldCode"', '"newCode"'):
        assert field in prompt
