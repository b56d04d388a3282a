"""Clone a repository, apply a verified fix, and open a pull request."""

__version__ = "1.0.0"

from .agent import PRAgent, run_agent  # noqa: E402

__all__ = ["PRAgent", "__version__", "run_agent"]
