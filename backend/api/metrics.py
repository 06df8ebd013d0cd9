"""
Metrics API
Entry points for metric producers to hand samples to the alert engine.

Endpoints:
    POST /api/metrics/system                  → CPU / memory sample
    POST /api/metrics/disk                    → Disk usage sample
    POST /api/metrics/network                 → NIC packet counters
    POST /api/metrics/environment             → Rack temperature / humidity
    POST /api/metrics/statistics/serverroom   → Server room averages
    POST /api/metrics/statistics/datacenter   → Data center averages

By default samples are queued and the call returns immediately. Pass
``?wait=true`` to get the evaluation results back.
"""

import asyncio

from fastapi import APIRouter, Depends

from alerts import AlertDispatcher
from core import (
    MetricSample,
    SystemMetric,
    DiskMetric,
    NetworkMetric,
    EnvironmentMetric,
    ServerRoomStatistics,
    DataCenterStatistics,
)

from .deps import get_dispatcher

router = APIRouter(prefix="/metrics", tags=["Metrics"])


async def _submit(dispatcher: AlertDispatcher, sample: MetricSample, wait: bool):
    future = dispatcher.submit(sample)
    if not wait:
        return {"status": "queued"}

    results = await asyncio.wrap_future(future)
    return {
        "status": "evaluated",
        "evaluations": len(results),
        "triggered": sum(1 for r in results if r.triggered),
        "resolved": sum(len(r.resolved) for r in results),
        "results": [r.to_dict() for r in results],
    }


@router.post("/system")
async def submit_system_metric(
    sample: SystemMetric,
    wait: bool = False,
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    return await _submit(dispatcher, sample, wait)


@router.post("/disk")
async def submit_disk_metric(
    sample: DiskMetric,
    wait: bool = False,
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    return await _submit(dispatcher, sample, wait)


@router.post("/network")
async def submit_network_metric(
    sample: NetworkMetric,
    wait: bool = False,
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    return await _submit(dispatcher, sample, wait)


@router.post("/environment")
async def submit_environment_metric(
    sample: EnvironmentMetric,
    wait: bool = False,
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    return await _submit(dispatcher, sample, wait)


@router.post("/statistics/serverroom")
async def submit_server_room_statistics(
    sample: ServerRoomStatistics,
    wait: bool = False,
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    return await _submit(dispatcher, sample, wait)


@router.post("/statistics/datacenter")
async def submit_data_center_statistics(
    sample: DataCenterStatistics,
    wait: bool = False,
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
):
    return await _submit(dispatcher, sample, wait)
