"""CLI package for the breach-index scorer.

Provides the build, score, check and serve flows used by scoreapp.py.
"""

from cli.build import build_index_flow
from cli.score import check_flow, score_flow, score_stream
from cli.serve import serve_flow

__all__ = [
    "build_index_flow",
    "check_flow",
    "score_flow",
    "score_stream",
    "serve_flow",
]
