"""
Clinic scheduler API

FastAPI service exposing the clinic session scheduler.
"""

__version__ = "0.1.0"
