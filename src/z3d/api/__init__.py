"""
REST API for Z3D.
"""

from z3d.api.app import create_app, run_server

__all__ = ["create_app", "run_server"]
