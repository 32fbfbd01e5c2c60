"""Shared Prisma client, connected and disconnected by the app lifespan."""

from prisma import Prisma

prisma = Prisma()


async def get_db() -> Prisma:
    """Database dependency for FastAPI dependency injection."""
    return prisma
