from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from rdflib import URIRef

from .namespaces import oslc
from .resource import OSLCResource


class PreviewInfo(BaseModel):
    document: str = ""
    hint_height: Optional[str] = Field(default=None, alias="hintHeight")
    hint_width: Optional[str] = Field(default=None, alias="hintWidth")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Compact(OSLCResource):
    """
    OSLC Compact representation (`application/x-oslc-compact+xml`), used for
    resource previews: a short title, an icon and small/large preview
    documents.
    """

    @property
    def icon(self) -> Optional[str]:
        return self._first(oslc.icon)

    @property
    def icon_title(self) -> Optional[str]:
        return self._first(oslc.iconTitle)

    @property
    def icon_src_set(self) -> Optional[str]:
        return self._first(oslc.iconSrcSet)

    @property
    def small_preview(self) -> Optional[PreviewInfo]:
        return self._preview(oslc.smallPreview)

    @property
    def large_preview(self) -> Optional[PreviewInfo]:
        return self._preview(oslc.largePreview)

    def _preview(self, predicate: URIRef) -> Optional[PreviewInfo]:
        preview = self.graph.value(self.uri, predicate)
        if preview is None:
            return None
        document = self.graph.value(preview, oslc.document)
        hint_height = self.graph.value(preview, oslc.hintHeight)
        hint_width = self.graph.value(preview, oslc.hintWidth)
        return PreviewInfo(
            document=str(document) if document is not None else "",
            hint_height=str(hint_height) if hint_height is not None else None,
            hint_width=str(hint_width) if hint_width is not None else None,
        )


__all__ = ["Compact", "PreviewInfo"]
