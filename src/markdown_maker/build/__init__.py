"""Build programs: HTML documents and static assets."""

from __future__ import annotations

from .assets import ASSET_PATTERNS, deploy_assets
from .dom import process_dom, render_blueprints, render_json_blocks
from .html import (
    build_collections,
    build_fragments,
    build_html,
    collection_output_name,
    fragment_output_name,
    validate_collection,
)
from .orchestrator import TASK_HOOKS, BuildOutcome, run_build, run_job

__all__ = [
    "ASSET_PATTERNS",
    "deploy_assets",
    "process_dom",
    "render_blueprints",
    "render_json_blocks",
    "build_collections",
    "build_fragments",
    "build_html",
    "collection_output_name",
    "fragment_output_name",
    "validate_collection",
    "TASK_HOOKS",
    "BuildOutcome",
    "run_build",
    "run_job",
]
