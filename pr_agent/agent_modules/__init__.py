"""Shared module namespace for the PR agent pipeline components."""

from . import (
    config,
    data_types,
    executor,
    exit_codes,
    git_ops,
    github,
    llm_client,
    planner,
    publisher,
    utils,
    validation,
    verifier,
    workspace,
)

__all__ = [
    "config",
    "data_types",
    "executor",
    "exit_codes",
    "git_ops",
    "github",
    "llm_client",
    "planner",
    "publisher",
    "utils",
    "validation",
    "verifier",
    "workspace",
]
