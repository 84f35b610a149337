from .app import App, main, run_main
from .supervisor import LoopSupervisor

__all__ = ["App", "LoopSupervisor", "main", "run_main"]
