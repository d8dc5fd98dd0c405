"""Reviews module.

Provides the Review Service, API router, and the repository layer for
reviews, weekly windows, strikes and emergency grants.
"""
