"""
Overlay Asset Model
===================

Decorative frame drawn over the photo strip.

Built-in assets are generated at startup and never persisted. User assets
are produced by the AssetIngestor and live in the durable asset store.
"""

from pydantic import BaseModel, ConfigDict, Field


class OverlayAsset(BaseModel):
    """
    Overlay frame asset.

    Attributes:
        id: Unique identifier
        display_name: Name shown to the operator
        image_uri: Encoded image as a data URI
        is_user_provided: False for built-in frames
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique asset identifier")
    display_name: str = Field(..., description="Operator-facing name")
    image_uri: str = Field(..., description="Encoded image as a data URI")
    is_user_provided: bool = Field(default=False, description="User-ingested asset")

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image."""
        return (
            f"OverlayAsset(id={self.id!r}, name={self.display_name!r}, "
            f"user={self.is_user_provided})"
        )

    def summary(self) -> dict:
        """JSON-friendly view without the image payload."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "is_user_provided": self.is_user_provided,
        }
