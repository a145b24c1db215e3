"""Core domain logic for soldier health monitoring.

This package contains the threshold classification, roster refresh and
view-model logic, isolated from presentation for easy testing and reasoning.
"""
