"""Orchestration pipelines for templog."""

from .logger_pipeline import LoggerPipeline, LoggerPipelineConfig, PipelineStats, create_logger_pipeline

__all__ = [
    "LoggerPipeline",
    "LoggerPipelineConfig",
    "PipelineStats",
    "create_logger_pipeline",
]
