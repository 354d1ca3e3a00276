"""
vidreach - personalized outreach video composition
"""
__version__ = "1.0.0"
