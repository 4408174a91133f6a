"""System health endpoint."""

import logging
import os
import time
from fastapi import APIRouter, Depends
from typing import Dict, Any

import asyncpg
import psutil

from chain import NFTContract, RPCError
from database import get_pool, DatabaseError
from ..dependencies import get_chain

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["System"]
)

async def database_status() -> str:
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval('SELECT 1')
        return "connected"
    except (DatabaseError, asyncpg.PostgresError, OSError) as e:
        logger.warning(f"Health check: database unavailable: {e}")
        return "disconnected"

async def blockchain_status(contract: NFTContract) -> Dict[str, Any]:
    if not contract.configured:
        return {'status': 'not configured', 'blockNumber': None}
    try:
        return {'status': 'connected', 'blockNumber': await contract.block_number()}
    except (RPCError, ValueError) as e:
        logger.warning(f"Health check: blockchain node unavailable: {e}")
        return {'status': 'unreachable', 'blockNumber': None}

def process_metrics() -> Dict[str, Any]:
    process = psutil.Process(os.getpid())
    with process.oneshot():
        return {
            'cpuPercent': psutil.cpu_percent(),
            'memoryPercent': psutil.virtual_memory().percent,
            'diskPercent': psutil.disk_usage('/').percent,
            'processMemoryMb': round(process.memory_info().rss / (1024 * 1024), 2),
            'uptimeSeconds': round(time.time() - process.create_time(), 1)
        }

@router.get("/health")
async def get_health(contract: NFTContract = Depends(get_chain)):
    """Report server status, database and node reachability, and process metrics."""
    return {
        'status': 'ok',
        'message': 'Server is running',
        'database': await database_status(),
        'blockchain': await blockchain_status(contract),
        'system': process_metrics()
    }
