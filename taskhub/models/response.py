"""
Response envelope returned by controllers
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel


class Response(BaseModel):
    """
    Uniform controller result.

    Exactly one of the shapes is produced:
        {"success": True, "data": ...}
        {"success": True, "message": "..."}
        {"success": False, "error": "..."}
    """
    success: bool = True
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "Response":
        """Successful result carrying data"""
        return cls(success=True, data=data)

    @classmethod
    def done(cls, message: str) -> "Response":
        """Successful result carrying a confirmation message"""
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, error: str) -> "Response":
        """Failed result carrying an error message"""
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Envelope as a plain dict with only the populated keys"""
        result: Dict[str, Any] = {"success": self.success}
        if not self.success:
            result["error"] = self.error
        elif self.message is not None and self.data is None:
            result["message"] = self.message
        else:
            result["data"] = self.data
        return result
