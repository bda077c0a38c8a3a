"""
Error types raised by yolo_runner.

Each error also derives from the builtin a caller would naturally catch
(ValueError for bad input, RuntimeError for runtime failures) and carries the
process exit code the CLI reports for it.
"""

from __future__ import annotations


class YoloRunnerError(Exception):
    exit_code = 1


class ConfigParseError(YoloRunnerError, ValueError):
    exit_code = 3


class ModelLoadError(YoloRunnerError, RuntimeError):
    exit_code = 4


class InvalidImageError(YoloRunnerError, ValueError):
    exit_code = 5


class UnknownModeError(YoloRunnerError, ValueError):
    exit_code = 6


class LabelIndexError(YoloRunnerError, IndexError):
    exit_code = 7


class OutputWriteError(YoloRunnerError, RuntimeError):
    exit_code = 8
