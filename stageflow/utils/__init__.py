"""Utility helpers for stageflow."""
