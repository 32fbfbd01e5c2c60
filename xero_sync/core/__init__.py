"""Core application components.

This module provides the foundational components for the connector:
- Database connection management via Prisma
- Application settings and configuration
- The persisted key-value store used for credentials, mappings and sync marks
"""
