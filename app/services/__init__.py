"""
Service Organization
====================
**application/**
  Singleton services managed by ServiceContainer. One instance per application.
  Examples: FacilityService, MetrcTagService, PlantLifecycleService

Commands that change plant state go through PlantLifecycleService; the other
services expose the primitives it composes inside one transaction.
"""

from .container import ServiceContainer

__all__ = ["ServiceContainer"]
