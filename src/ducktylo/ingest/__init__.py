"""Ducktylo auto-ingest pipeline.

- models: domain records shared by every stage
- taxonomy: closed vocabularies and list normalization
- text_extractor: PDF, DOCX and FDX to plain text
- response_parser: model output to normalized results
- client: one model call per script
- orchestrator: the authenticated end-to-end run

The orchestrator depends on ``ducktylo.backend``, which itself imports
``ducktylo.ingest.models``, so it is imported from its own module rather
than re-exported here.
"""

from ducktylo.ingest.models import AutoIngestCharacter as AutoIngestCharacter
from ducktylo.ingest.models import AutoIngestResult as AutoIngestResult
from ducktylo.ingest.models import IngestJob as IngestJob
from ducktylo.ingest.models import IngestOutcome as IngestOutcome
from ducktylo.ingest.models import IngestRequest as IngestRequest
from ducktylo.ingest.models import JobStatus as JobStatus

__all__ = [
    "AutoIngestCharacter",
    "AutoIngestResult",
    "IngestJob",
    "IngestOutcome",
    "IngestRequest",
    "JobStatus",
]
