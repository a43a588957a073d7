"""
Application Package

Contains the FastAPI monitoring API that exposes the exchange feeds.
"""
