"""Orquestração do pipeline: planner (DAG) e Engine de execução."""

from .engine import Engine, PipelineConfig
from .planner import plan_execution

__all__ = ["Engine", "PipelineConfig", "plan_execution"]
