"""Minimal Registry API v2 server for exercising the HTTP client."""

import hashlib
import uuid

from aiohttp import web

from registry_image_tools.core.connectivity import API_VERSION_HEADER


class RegistryState:
    """Blobs, manifests and upload sessions of one fake registry."""

    def __init__(self) -> None:
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.manifests: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.uploads: dict[str, bytearray] = {}
        self.requests: list[tuple[str, str]] = []
        self.host = ""

    def add_blob(self, repository: str, data: bytes) -> str:
        digest = f"sha256:{hashlib.sha256(data).hexdigest()}"
        self.blobs[(repository, digest)] = data
        return digest

    def add_manifest(self, repository: str, reference: str, raw: bytes, media_type: str) -> str:
        digest = f"sha256:{hashlib.sha256(raw).hexdigest()}"
        self.manifests[(repository, reference)] = (raw, media_type)
        self.manifests[(repository, digest)] = (raw, media_type)
        return digest

    def methods(self, method: str) -> list[str]:
        return [path for m, path in self.requests if m == method]


def make_registry_app(state: RegistryState) -> web.Application:
    @web.middleware
    async def record(request, handler):
        state.requests.append((request.method, request.path))
        return await handler(request)

    async def version(request):
        return web.json_response({}, headers={API_VERSION_HEADER: "registry/2.0"})

    async def get_manifest(request):
        key = (request.match_info["name"], request.match_info["reference"])
        if key not in state.manifests:
            raise web.HTTPNotFound()
        raw, media_type = state.manifests[key]
        return web.Response(
            body=raw,
            headers={
                "Content-Type": media_type,
                "Docker-Content-Digest": f"sha256:{hashlib.sha256(raw).hexdigest()}",
            },
        )

    async def put_manifest(request):
        raw = await request.read()
        digest = state.add_manifest(
            request.match_info["name"],
            request.match_info["reference"],
            raw,
            request.headers.get("Content-Type", ""),
        )
        return web.Response(status=201, headers={"Docker-Content-Digest": digest})

    async def get_blob(request):
        key = (request.match_info["name"], request.match_info["digest"])
        if key not in state.blobs:
            raise web.HTTPNotFound()
        return web.Response(body=state.blobs[key], content_type="application/octet-stream")

    def upload_location(name: str, session_id: str) -> dict[str, str]:
        return {"Location": f"/v2/{name}/blobs/uploads/{session_id}"}

    async def start_upload(request):
        name = request.match_info["name"]
        mount, source = request.query.get("mount"), request.query.get("from")
        if mount and (source, mount) in state.blobs:
            state.blobs[(name, mount)] = state.blobs[(source, mount)]
            return web.Response(status=201)
        session_id = str(uuid.uuid4())
        state.uploads[session_id] = bytearray()
        return web.Response(status=202, headers=upload_location(name, session_id))

    async def patch_upload(request):
        session_id = request.match_info["session_id"]
        if session_id not in state.uploads:
            raise web.HTTPNotFound()
        state.uploads[session_id].extend(await request.read())
        return web.Response(
            status=202, headers=upload_location(request.match_info["name"], session_id)
        )

    async def finish_upload(request):
        session_id = request.match_info["session_id"]
        if session_id not in state.uploads:
            raise web.HTTPNotFound()
        data = bytes(state.uploads.pop(session_id)) + await request.read()
        digest = request.query.get("digest", "")
        if digest != f"sha256:{hashlib.sha256(data).hexdigest()}":
            raise web.HTTPBadRequest(text="DIGEST_INVALID")
        state.blobs[(request.match_info["name"], digest)] = data
        return web.Response(status=201, headers={"Docker-Content-Digest": digest})

    async def cancel_upload(request):
        state.uploads.pop(request.match_info["session_id"], None)
        return web.Response(status=204)

    app = web.Application(middlewares=[record])
    app.router.add_get("/v2/", version)
    app.router.add_post("/v2/{name:.+}/blobs/uploads/", start_upload)
    app.router.add_patch("/v2/{name:.+}/blobs/uploads/{session_id}", patch_upload)
    app.router.add_put("/v2/{name:.+}/blobs/uploads/{session_id}", finish_upload)
    app.router.add_delete("/v2/{name:.+}/blobs/uploads/{session_id}", cancel_upload)
    app.router.add_get("/v2/{name:.+}/blobs/{digest}", get_blob)
    app.router.add_get("/v2/{name:.+}/manifests/{reference}", get_manifest)
    app.router.add_put("/v2/{name:.+}/manifests/{reference}", put_manifest)
    return app
