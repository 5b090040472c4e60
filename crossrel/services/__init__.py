"""Pipeline stages: build, archive, publish, deploy."""

from .archive import ArchiveService
from .build import BuildJob, BuildReport, BuildService, expand_jobs
from .deploy import DeployOutcome, DeployService, DeployState
from .errors import PipelineError, StageError
from .notify import AlertDispatcher, AppriseNotifier
from .publish import PublishService
from .versioning import ReleaseInfo, changelog, current_version, resolve_release_info

__all__ = [
    "AlertDispatcher",
    "AppriseNotifier",
    "ArchiveService",
    "BuildJob",
    "BuildReport",
    "BuildService",
    "DeployOutcome",
    "DeployService",
    "DeployState",
    "PipelineError",
    "PublishService",
    "ReleaseInfo",
    "StageError",
    "changelog",
    "current_version",
    "expand_jobs",
    "resolve_release_info",
]
