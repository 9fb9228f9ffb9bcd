"""
Greenpia Portal API (FastAPI)
"""
