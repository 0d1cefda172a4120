#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Render pipeline stages
======================
The host renderer runs named stages over a ``RenderContext``.  A stage says
which stage names it handles and returns a new context from ``apply``; the
pipeline owns ordering.

Stage names
-----------
pre_render_html          full render of saved content
pre_render_preview_html  editor preview
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Protocol, runtime_checkable

from .state_cache import RenderStateCache
from .tags import REF_ALIASES, TagContextMap, scan


# -----------------------------------------------------------------------------

STAGE_PRE_RENDER         = "pre_render_html"
STAGE_PRE_RENDER_PREVIEW = "pre_render_preview_html"


def stage_for(preview: bool) -> str:
    return STAGE_PRE_RENDER_PREVIEW if preview else STAGE_PRE_RENDER


# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class RenderContext:
    stage_name: str
    context_id: str
    html: str
    refs_context_map: TagContextMap = field(default_factory=dict)

    @property
    def is_preview(self) -> bool:
        return self.stage_name == STAGE_PRE_RENDER_PREVIEW


@runtime_checkable
class RenderStage(Protocol):
    def handles(self, stage_name: str) -> bool: ...

    def apply(self, context: RenderContext) -> RenderContext: ...


# -----------------------------------------------------------------------------

class RefsPreRenderStage:
    """Replaces refs tags with placeholders.

    A full render clears the context's cached resolutions before scanning;
    a preview keeps them.
    """

    def __init__(self, cache: RenderStateCache, aliases: Iterable[str] = REF_ALIASES) -> None:
        self.cache = cache
        self.aliases = frozenset(aliases)

    def handles(self, stage_name: str) -> bool:
        return stage_name in (STAGE_PRE_RENDER, STAGE_PRE_RENDER_PREVIEW)

    def apply(self, context: RenderContext) -> RenderContext:
        if context.stage_name == STAGE_PRE_RENDER:
            self.cache.clear_all(context.context_id)
        html, context_map = scan(context.html, self.aliases)
        return replace(context, html=html, refs_context_map=context_map)


# -----------------------------------------------------------------------------

class RenderPipeline:

    def __init__(self, stages: Iterable[RenderStage] = ()) -> None:
        self._stages: list[RenderStage] = list(stages)

    def register(self, stage: RenderStage) -> RenderStage:
        if not isinstance(stage, RenderStage):
            raise TypeError(f"{stage!r} does not implement handles()/apply()")
        self._stages.append(stage)
        return stage

    def run(self, context: RenderContext) -> RenderContext:
        for stage in self._stages:
            if stage.handles(context.stage_name):
                context = stage.apply(context)
        return context


def build_render_pipeline(cache: RenderStateCache) -> RenderPipeline:
    pipeline = RenderPipeline()
    pipeline.register(RefsPreRenderStage(cache))
    return pipeline


# -----------------------------------------------------------------------------
