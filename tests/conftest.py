"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup (so tests run from a plain checkout)
- Pytest markers for test categorization (unit, property)
- Source-data fixtures shared by the hierarchy and render tests
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest


# ==============================================================================
# Path Setup - Ensures treechart/ is importable
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests with no I/O",
    )
    config.addinivalue_line(
        "markers",
        "property: Hypothesis property-based tests",
    )


# ==============================================================================
# Source Data Fixtures
# ==============================================================================

@pytest.fixture
def small_source():
    """Four-node tree:

        1 root
        |-- 2 a
        `-- 3 b
            `-- 4 c
    """
    return {
        "id": 1,
        "name": "root",
        "children": [
            {"id": 2, "name": "a"},
            {"id": 3, "name": "b", "children": [{"id": 4, "name": "c"}]},
        ],
    }


@pytest.fixture
def branching_source():
    """Three branches of different shapes plus cross-branch connections."""
    return {
        "id": "root",
        "name": "root",
        "children": [
            {
                "id": "A",
                "name": "alpha",
                "value": 10,
                "children": [
                    {"id": "A1", "name": "alpha-1", "value": 3},
                    {"id": "A2", "name": "alpha-2", "value": 4,
                     "children": [{"id": "A2x", "name": "deep", "value": 1}]},
                ],
            },
            {
                "id": "B",
                "name": "beta",
                "value": 6,
                "children": [{"id": "B1", "name": "beta-1", "value": 2}],
            },
            {"id": "C", "name": "gamma", "value": 0},
        ],
        "connections": [
            {"from": "A2x", "to": "B1", "label": "depends"},
            {"from": "A1", "to": "C"},
            {"from": "B", "to": "B"},
        ],
    }

