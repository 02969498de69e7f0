"""
EventFlow

Core services shared by the EventFlow GraphQL backend: configuration,
MongoDB connection management, in-process pub/sub and document models.
"""

__version__ = "0.1.0"
