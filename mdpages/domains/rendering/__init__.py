from mdpages.domains.rendering.entities import Failure, RenderOutcome, Success
from mdpages.domains.rendering.adapters import (
    CodeHighlighter, MarkdownParser, MathTypesetter, Sanitizer
)
from mdpages.domains.rendering.display import DisplaySurface
from mdpages.domains.rendering.schemas import RenderRequest, RenderResponse
from mdpages.domains.rendering.services import (
    RenderPipeline, ServiceGate, ServiceRegistry, registry, substitute_math
)

__all__ = [
    "Failure", "RenderOutcome", "Success",
    "CodeHighlighter", "MarkdownParser", "MathTypesetter", "Sanitizer",
    "DisplaySurface",
    "RenderRequest", "RenderResponse",
    "RenderPipeline", "ServiceGate", "ServiceRegistry", "registry", "substitute_math"
]
