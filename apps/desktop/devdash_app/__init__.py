"""Headless DevDash polling loop and command line."""

from .controller import DashboardController, build_controller

__all__ = ["DashboardController", "build_controller"]
