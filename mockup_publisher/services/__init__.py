"""Service layer exports."""

from .artifact import ArtifactStorage, DownloadDocumentRenderer
from .content_generator import ContentGenerator, GeneratedContent
from .publish_pipeline import PublishPipeline, PublishRequest, PublishResult
from .session import SessionTokenSigner
from .templates import TemplateService
from .token_cipher import TokenCipherService
from .token_store import TokenStore

__all__ = [
    "ArtifactStorage",
    "ContentGenerator",
    "DownloadDocumentRenderer",
    "GeneratedContent",
    "PublishPipeline",
    "PublishRequest",
    "PublishResult",
    "SessionTokenSigner",
    "TemplateService",
    "TokenCipherService",
    "TokenStore",
]
