from typing import Optional, Dict, Any, Protocol


class PipelineAuditLogger(Protocol):
    def log(self, operation: str, image_id: Optional[str], success: bool = True, mode: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        ...
