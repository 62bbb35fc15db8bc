"""
Simulation: replay a scenario of orders and price ticks on the local runtime.
"""

from simulation.runner import SimulatedOrder, SimulationResult, run_simulation
from simulation.scenario import Scenario, load_scenario

__all__ = ["Scenario", "SimulatedOrder", "SimulationResult", "load_scenario", "run_simulation"]
