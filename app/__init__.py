"""
                Restaurant Ordering Platform

Multi-tenant restaurant ordering backend: restaurant directory, menu
catalog, order engine with a status workflow, and an advisory assistant
backed by a Mock/Gemini text generator.

Version: 1.0.0
"""

__version__ = "1.0.0"
