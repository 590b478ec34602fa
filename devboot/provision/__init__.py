"""Workstation provisioning: idempotent install steps run in a fixed order."""

from __future__ import annotations

from .ai_tools import AI_TOOLS, AITool, install_ai_tools
from .context import ProvisionContext
from .runner import run_provisioner, show_completion, show_welcome
from .steps import (
    GHOSTTY,
    GIT,
    GITHUB_CLI,
    HOMEBREW,
    NODE,
    NVM,
    InstallStep,
    apply_step,
    check_platform,
    configure_git_identity,
    setup_github_auth,
)

__all__ = [
    'AITool',
    'AI_TOOLS',
    'GHOSTTY',
    'GIT',
    'GITHUB_CLI',
    'HOMEBREW',
    'InstallStep',
    'NODE',
    'NVM',
    'ProvisionContext',
    'apply_step',
    'check_platform',
    'configure_git_identity',
    'install_ai_tools',
    'run_provisioner',
    'setup_github_auth',
    'show_completion',
    'show_welcome',
]
