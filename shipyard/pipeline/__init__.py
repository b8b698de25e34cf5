"""Release pipeline: matrix, legs, gate, fanout and the scheduler tying them together."""

from shipyard.pipeline.errors import (
    BuildFailure,
    DistributionFailure,
    GateConflict,
    HostError,
    PackagingFailure,
    PublishWithheld,
    UploadFailure,
)
from shipyard.pipeline.gate import PublishPolicy, ReleaseGate
from shipyard.pipeline.matrix import TargetMatrix
from shipyard.pipeline.model import (
    BuildResult,
    BuildTarget,
    PackagedArtifact,
    ReleaseRecord,
    ReleaseVersion,
    RunStatus,
)
from shipyard.pipeline.orchestrator import ReleasePipeline
from shipyard.pipeline.report import RunReport

__all__ = [
    # Value types
    "BuildResult",
    "BuildTarget",
    "PackagedArtifact",
    "ReleaseRecord",
    "ReleaseVersion",
    "RunStatus",
    # Failures
    "BuildFailure",
    "DistributionFailure",
    "GateConflict",
    "HostError",
    "PackagingFailure",
    "PublishWithheld",
    "UploadFailure",
    # Components
    "PublishPolicy",
    "ReleaseGate",
    "ReleasePipeline",
    "RunReport",
    "TargetMatrix",
]
