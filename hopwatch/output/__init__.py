"""
Output modules for hopwatch
"""

from .console import ConsoleOutput, LiveView

__all__ = ['ConsoleOutput', 'LiveView']
