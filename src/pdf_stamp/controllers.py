from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .config import DEFAULT_RENDER_SCALE
from .errors import PageOutOfRange
from .layout import to_overlay_position
from .models import Payload, PdfCoordinate, PlacedObject, SigningRequest
from .render import RenderedPage, describe_pages, render_page


@dataclass
class Scene:
    """A rendered page bitmap with the objects placed over it."""

    page: RenderedPage
    objects: List[PlacedObject] = field(default_factory=list)

    def place(self, obj: PlacedObject) -> None:
        self.objects.append(obj)

    def clear(self) -> None:
        self.objects.clear()


class ViewerSession:
    """State of one upload-then-sign flow: document, current page and render queue.

    Rendering is single-flight. While a render is in progress, further
    requests only replace the pending page; ``finish_render`` hands back the
    page that should be rendered next, if any.
    """

    def __init__(
        self,
        renderer=render_page,
        page_lister=describe_pages,
        scale_factor: float = DEFAULT_RENDER_SCALE,
    ) -> None:
        self._render = renderer
        self._list_pages = page_lister
        self.scale_factor = scale_factor
        self.pdf_bytes: Optional[bytes] = None
        self.page_count: int = 0
        self.page_index: int = 0
        self.rendering: bool = False
        self.pending_page: Optional[int] = None
        self.scene: Optional[Scene] = None

    @property
    def loaded(self) -> bool:
        return self.pdf_bytes is not None

    def load(self, pdf_bytes: bytes) -> int:
        pages = self._list_pages(pdf_bytes)
        self.pdf_bytes = bytes(pdf_bytes)
        self.page_count = len(pages)
        self.page_index = 0
        self.rendering = False
        self.pending_page = None
        self.scene = None
        return self.page_count

    def close(self) -> None:
        self.pdf_bytes = None
        self.page_count = 0
        self.page_index = 0
        self.rendering = False
        self.pending_page = None
        self.scene = None

    def queue_render(self, page_index: int) -> Optional[int]:
        """Start rendering ``page_index`` or park it as the pending request.

        Returns the page to render now, or None when it was queued.
        """
        if self.rendering:
            self.pending_page = page_index
            return None
        self.rendering = True
        return page_index

    def render(self, page_index: int) -> RenderedPage:
        return self._render(self.pdf_bytes, page_index, self.scale_factor)

    def finish_render(self, rendered: RenderedPage) -> Optional[int]:
        self.scene = Scene(page=rendered)
        self.rendering = False
        if self.pending_page is None:
            return None
        pending, self.pending_page = self.pending_page, None
        return self.queue_render(pending)

    def show_page(self, page_index: int) -> Optional[Scene]:
        """Render synchronously, draining any pending request."""
        if not self.loaded:
            return None
        if not 0 <= page_index < self.page_count:
            raise PageOutOfRange(page_index, self.page_count)
        self.page_index = page_index
        target = self.queue_render(page_index)
        while target is not None:
            target = self.finish_render(self.render(target))
        return self.scene

    def next_page(self) -> Optional[int]:
        if self.loaded and self.page_index < self.page_count - 1:
            self.page_index += 1
            return self.queue_render(self.page_index)
        return None

    def prev_page(self) -> Optional[int]:
        if self.loaded and self.page_index > 0:
            self.page_index -= 1
            return self.queue_render(self.page_index)
        return None

    def place(self, obj: PlacedObject) -> Optional[Scene]:
        if not self.scene:
            return None
        self.scene.place(obj)
        return self.scene

    def place_at(
        self, payload: Payload, coord: PdfCoordinate, width_pdf: float, height_pdf: float
    ) -> Optional[PlacedObject]:
        """Put a signature already known in PDF space back on the overlay."""
        if not self.scene:
            return None
        geometry = self.scene.page.geometry
        left, top = to_overlay_position(coord, height_pdf, geometry)
        obj = PlacedObject(
            kind=payload.kind,
            left=left,
            top=top,
            width=width_pdf * geometry.scale_factor,
            height=height_pdf * geometry.scale_factor,
            payload=payload,
        )
        self.scene.place(obj)
        return obj

    def clear_placements(self) -> None:
        if self.scene:
            self.scene.clear()

    def signing_request(self, obj: PlacedObject) -> Optional[SigningRequest]:
        if not self.loaded or not self.scene:
            return None
        return SigningRequest(
            source_pdf_bytes=self.pdf_bytes,
            page_geometry=self.scene.page.geometry,
            placed_object=obj,
        )
