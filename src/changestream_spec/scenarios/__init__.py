"""
Scenario execution for change stream specification documents.

- context: Suite-wide and per-scenario state
- orchestrator: Concurrent subscription drain and operation script
- verifier: Outcome and command-started event assertions
- requirements: Server version and topology checks
- runner: Suite runner producing per-scenario results
"""

from changestream_spec.scenarios.context import RunContext, SuiteContext
from changestream_spec.scenarios.orchestrator import ScenarioOrchestrator, ScenarioOutcome
from changestream_spec.scenarios.requirements import unmet_requirement
from changestream_spec.scenarios.runner import ScenarioResult, ScenarioStatus, SpecRunner
from changestream_spec.scenarios.verifier import verify, verify_events, verify_outcome

__all__ = [
    "RunContext",
    "ScenarioOrchestrator",
    "ScenarioOutcome",
    "ScenarioResult",
    "ScenarioStatus",
    "SpecRunner",
    "SuiteContext",
    "unmet_requirement",
    "verify",
    "verify_events",
    "verify_outcome",
]
