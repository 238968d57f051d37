from .core import PipelineRunner, Workspace

__all__ = ["PipelineRunner", "Workspace"]
