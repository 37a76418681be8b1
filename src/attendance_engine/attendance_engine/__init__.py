"""Attendance Engine package.

Organized by feature modules (attendance, leaves, locations, sweeper, ...)
with SOLID service/repository layers and a thin Flask shell that only wires
the container, CLI commands and the background scheduler.
"""
