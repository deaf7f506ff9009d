"""TokenGate background tasks."""

from tokengate.tasks.sweep import is_sweep_running, start_lease_sweep, stop_lease_sweep, sweep_once

__all__ = ["is_sweep_running", "start_lease_sweep", "stop_lease_sweep", "sweep_once"]
