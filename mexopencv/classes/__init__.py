"""Stateful-class adapters. Each class keeps its live objects in its own handle registry."""
