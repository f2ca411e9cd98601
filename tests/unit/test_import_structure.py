"""
Tests for import structure and module exports.

Each module is imported first thing in a fresh interpreter, so an import
cycle that only shows up for a particular import order fails here instead of
during test collection.
"""

import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.mark.parametrize(
    "module",
    [
        "agent.services.collaborators",
        "agent.services.in_memory",
        "agent.state.schemas",
        "agent.fsm",
        "agent.fsm.entity_extractor",
        "agent.nodes",
        "agent.prompts",
        "agent.tools",
        "agent.orchestrator",
    ],
)
def test_module_imports_in_fresh_interpreter(module):
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert result.returncode == 0, result.stderr


class TestFSMModuleExports:
    """Test agent.fsm module exports."""

    def test_fsm_exports_reducer_and_models(self):
        from agent.fsm import (
            ExtractionPatch,
            PersonalData,
            ReservationFSM,
            ReservationInProgress,
            ReservationStep,
        )

        assert ReservationFSM.update is not None
        assert ReservationStep.DATES.value == "dates"
        assert ExtractionPatch is not None
        assert PersonalData is not None
        assert ReservationInProgress is not None

    def test_extractor_uses_live_catalog_type(self):
        from agent.fsm import extract_entities
        from agent.services.collaborators import RoomType

        assert extract_entities is not None
        assert RoomType is not None
