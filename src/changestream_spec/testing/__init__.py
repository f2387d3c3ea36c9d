"""
Test utilities for changestream_spec.

Components:
    scenario_params: pytest params (with skip marks) for each scenario of
        one or more specification documents
    scenario_id: Readable pytest id for a scenario

Example:
    >>> from changestream_spec.testing import scenario_params
    >>>
    >>> @pytest.mark.parametrize("test", scenario_params(document))
    ... async def test_scenario(runner, test):
    ...     await runner.run_scenario(test)

Note:
    This module imports pytest and is intended for test code only. It
    should not be imported in production code paths.
"""

from changestream_spec.testing.parametrize import scenario_id, scenario_params

__all__ = ["scenario_id", "scenario_params"]
