"""Engine package assembling golden-hour reports."""

from .report import GoldenHourReport, build_report

__all__ = ["build_report", "GoldenHourReport"]
