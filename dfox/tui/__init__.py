"""TUI (Terminal User Interface) module for dfox.

A pure state machine (`machine.transition`) driven by a screen-based router.
"""
from .dispatcher import EventDispatcher, Key
from .machine import transition
from .navigator import Navigator
from .router import Router
from .state import AppState, Screen, initial_state
from .view import View, render

__all__ = [
    "AppState",
    "EventDispatcher",
    "Key",
    "Navigator",
    "Router",
    "Screen",
    "View",
    "initial_state",
    "render",
    "transition",
]
