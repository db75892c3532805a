import asyncio
import hmac
import logging
from typing import Any, Dict

from aiohttp import web

from .config import Settings
from .errors import BadRequest, LicenseError, NoOp, TooManyRequests, Unauthorized
from .models import AdminUserRequest, LicenseCheck, UserCheck, UserList, iso_now
from .services.allowlist import AllowList, ApprovedUsers
from .services.ratelimit import SlidingWindowLimiter

# 게임 서버가 사용자 승인 여부를 확인하고 관리자가 허용 목록을 다루는 HTTP API를 제공합니다.
log = logging.getLogger("licensebot.web")


def _json(data: Dict[str, Any], status: int = 200) -> web.Response:
    return web.json_response(data, status=status)


def _error(status: int, message: str) -> web.Response:
    return _json({"error": message}, status=status)


def _client_id(request: web.Request) -> str:
    return request.remote or "unknown"


def _require_admin(request: web.Request, supplied: Any) -> None:
    expected = request.app["settings"].admin_key
    if not expected or not isinstance(supplied, str) or not supplied:
        raise Unauthorized()
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise Unauthorized()


async def _read_body(request: web.Request) -> Any:
    if not request.can_read_body:
        return {}
    try:
        return await request.json()
    except ValueError:
        return {}


# ---------------------- middlewares ----------------------
@web.middleware
async def rate_limit_middleware(request: web.Request, handler):
    limiter: SlidingWindowLimiter = request.app["limiter"]
    client = _client_id(request)
    if not limiter.hit(client):
        log.warning(f"Rate limit hit for {client} on {request.path}")
        resp = _error(TooManyRequests.status, TooManyRequests.default_message)
        resp.headers["Retry-After"] = str(limiter.retry_after(client))
        return resp
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except LicenseError as e:
        return _error(e.status, e.message)
    except Exception:
        log.exception(f"Unhandled error on {request.method} {request.path}")
        return _error(500, "Internal server error")


# ---------------------- check endpoints ----------------------
async def api_check_user_license(request: web.Request) -> web.Response:
    license_key = request.match_info.get("licenseKey") or ""
    username = request.match_info.get("username") or ""
    if not license_key or not username:
        raise BadRequest("License key and username are required")

    allowlist: AllowList = request.app["allowlist"]
    res = await allowlist.read(license_key)
    if res.error is not None:
        log.error(f"Error reading license file for {license_key}: {res.error}")
    result = LicenseCheck(username=username, license_key=license_key, approved=username in res.data)
    log.info(f"License check: {license_key} - {username} - {'APPROVED' if result.approved else 'DENIED'}")
    return _json(result.to_dict())


async def api_check_user(request: web.Request) -> web.Response:
    username = request.match_info.get("username") or ""
    if not username:
        raise BadRequest("Username is required")

    approved_users: ApprovedUsers = request.app["approved_users"]
    users = await approved_users.list()
    result = UserCheck(username=username, approved=username in users)
    log.info(f"User check: {username} - {'APPROVED' if result.approved else 'DENIED'}")
    return _json(result.to_dict())


async def api_health(request: web.Request) -> web.Response:
    return _json({"status": "OK", "timestamp": iso_now()})


# ---------------------- admin endpoints ----------------------
async def api_admin_add_user(request: web.Request) -> web.Response:
    req = AdminUserRequest.from_body(await _read_body(request))
    _require_admin(request, req.admin_key)
    if not req.username:
        raise BadRequest("Username is required")
    approved_users: ApprovedUsers = request.app["approved_users"]
    if not await approved_users.add(req.username):
        raise NoOp("User already exists or error occurred")
    return _json({"message": f"User {req.username} added successfully"})


async def api_admin_remove_user(request: web.Request) -> web.Response:
    req = AdminUserRequest.from_body(await _read_body(request))
    _require_admin(request, req.admin_key)
    if not req.username:
        raise BadRequest("Username is required")
    approved_users: ApprovedUsers = request.app["approved_users"]
    if not await approved_users.remove(req.username):
        raise NoOp("User not found or error occurred")
    return _json({"message": f"User {req.username} removed successfully"})


async def api_admin_users(request: web.Request) -> web.Response:
    _require_admin(request, request.rel_url.query.get("adminKey"))
    approved_users: ApprovedUsers = request.app["approved_users"]
    return _json(UserList(await approved_users.list()).to_dict())


async def api_admin_license_users(request: web.Request) -> web.Response:
    _require_admin(request, request.rel_url.query.get("adminKey"))
    license_key = request.match_info.get("licenseKey") or ""
    if not license_key:
        raise BadRequest("License key is required")
    allowlist: AllowList = request.app["allowlist"]
    users = await allowlist.list(license_key)
    return _json(UserList(users, license_key=license_key).to_dict())


# ---------------------- app ----------------------
async def _init_storage(app: web.Application) -> None:
    settings: Settings = app["settings"]
    settings.licenses_dir.mkdir(parents=True, exist_ok=True)
    await app["approved_users"].initialize()


async def _prune_limiter(app: web.Application):
    limiter: SlidingWindowLimiter = app["limiter"]

    async def _loop():
        while True:
            await asyncio.sleep(max(60.0, limiter.window_sec))
            limiter.prune()

    task = asyncio.create_task(_loop())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


def create_app(settings: Settings) -> web.Application:
    app = web.Application(middlewares=[error_middleware, rate_limit_middleware])
    app["settings"] = settings
    app["allowlist"] = AllowList.for_licenses(settings.licenses_dir)
    app["approved_users"] = ApprovedUsers(settings.approved_users_file)
    app["limiter"] = SlidingWindowLimiter(settings.rate_limit_max, settings.rate_limit_window_sec)

    app.add_routes([
        web.get("/health", api_health),

        web.get("/check-user-license/{licenseKey:[^/]*}/{username:[^/]*}", api_check_user_license),
        web.get("/check-user-license/{licenseKey:[^/]*}", api_check_user_license),
        web.get("/check-user-license", api_check_user_license),
        web.get("/check-user/{username:[^/]*}", api_check_user),
        web.get("/check-user", api_check_user),

        web.post("/admin/add-user", api_admin_add_user),
        web.post("/admin/remove-user", api_admin_remove_user),
        web.get("/admin/users", api_admin_users),
        web.get("/admin/license-users/{licenseKey:[^/]*}", api_admin_license_users),
    ])

    app.on_startup.append(_init_storage)
    app.cleanup_ctx.append(_prune_limiter)

    async def on_prepare(request, response):
        response.headers.setdefault("Access-Control-Allow-Origin", settings.cors_origin)
        response.headers.setdefault("Access-Control-Allow-Headers", "*, Content-Type")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,POST,OPTIONS")

    app.on_response_prepare.append(on_prepare)
    return app


async def start_web(settings: Settings) -> web.AppRunner:
    app = create_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=settings.host, port=settings.port)
    await site.start()
    base = f"http://localhost:{settings.port}"
    log.info(f"License API server running on port {settings.port}")
    log.info(f"Health check: {base}/health")
    log.info(f"License-based endpoint: {base}/check-user-license/{{licenseKey}}/{{username}}")
    return runner
