import os

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from pydantic import ValidationError as DecodeError
from starlette.background import BackgroundTask

from installctl.modules.clusters import ClusterService
from installctl.modules.schemas import ClusterRequest, ClusterResponse, format_responses

router = APIRouter()


def get_service(request: Request) -> ClusterService:
    return request.app.state.service


async def decode_cluster_request(request: Request):
    body = await request.body()
    try:
        return ClusterRequest.model_validate_json(body or b"{}"), None
    except DecodeError as e:
        return None, PlainTextResponse(f"could not decode body: {e}\n", status_code=400)


@router.post("/clusters")
async def create_cluster(request: Request, service: ClusterService = Depends(get_service)):
    req, error = await decode_cluster_request(request)
    if error:
        return error
    await run_in_threadpool(service.create, req)
    return PlainTextResponse("ok\n", status_code=202)


@router.get("/clusters")
def list_clusters(service: ClusterService = Depends(get_service)):
    return JSONResponse(content=format_responses(service.list()))


@router.get("/clusters/{name}")
def get_cluster(name: str, service: ClusterService = Depends(get_service)):
    record = service.get(name)
    return JSONResponse(content=ClusterResponse.from_record(name, record).model_dump(by_alias=True))


@router.put("/clusters/{name}")
async def update_cluster(name: str, request: Request, service: ClusterService = Depends(get_service)):
    req, error = await decode_cluster_request(request)
    if error:
        return error
    record = await run_in_threadpool(service.update, name, req)
    return JSONResponse(
        content=ClusterResponse.from_record(name, record).model_dump(by_alias=True),
        status_code=202,
    )


@router.delete("/clusters/{name}")
def delete_cluster(name: str, service: ClusterService = Depends(get_service)):
    service.delete(name)
    return PlainTextResponse("ok\n", status_code=202)


@router.get("/clusters/{name}/kubeconfig")
def get_kubeconfig(name: str, service: ClusterService = Depends(get_service)):
    # attachment so browsers download it instead of displaying it
    return FileResponse(service.kubeconfig_path(name), filename="config")


@router.get("/clusters/{name}/logs")
def get_logs(name: str, service: ClusterService = Depends(get_service)):
    return FileResponse(service.logs_path(name), media_type="text/plain")


@router.get("/clusters/{name}/assets")
def get_assets(name: str, service: ClusterService = Depends(get_service)):
    archive = service.assets_archive(name)
    return FileResponse(
        archive,
        media_type="application/gzip",
        filename=f"{name}-assets.tar.gz",
        background=BackgroundTask(os.remove, archive),
    )
