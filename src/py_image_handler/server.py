"""HTTP 服务。

GET /、/ping 返回 ok；GET /debug、/_debug 返回运行环境信息；
GET /<对象路径>?x-oss-process=image/... 返回处理后的图片。
错误统一返回 {status, name, message} 结构。
"""

import time

import PIL
import uvicorn
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from . import __version__
from .config import get_config
from .engine import load_font
from .exceptions import ErrorHandler, ImageHandlerError
from .gateway import bypass, handle_request
from .store import BufferStore, create_buffer_store
from .utils.logging_helpers import configure_logging, get_logger


logger = get_logger()

app = FastAPI(
    title="图片处理网关",
    description="通过 URL 中的处理指令对存储中的图片进行格式转换、缩放、旋转与水印处理",
    version=__version__,
)


@app.middleware("http")
async def log_and_catch(request: Request, call_next) -> Response:
    """记录请求日志，兜底处理未捕获的异常"""
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        ErrorHandler.log(exc, request.url.path)
        body = ErrorHandler.to_body(exc)
        response = JSONResponse(body, status_code=body["status"])

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms"
    )
    return response


@app.exception_handler(ImageHandlerError)
async def handler_error(request: Request, exc: ImageHandlerError) -> JSONResponse:
    ErrorHandler.log(exc, request.url.path)
    return JSONResponse(ErrorHandler.to_body(exc), status_code=exc.status)


def get_buffer_store(request: Request) -> BufferStore:
    """按请求选择原图存储，x-bucket 头覆盖默认存储桶"""
    return create_buffer_store(get_config(), bucket=request.headers.get("x-bucket"))


@app.get("/", response_class=PlainTextResponse)
@app.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "ok"


@app.get("/debug")
@app.get("/_debug")
async def debug() -> JSONResponse:
    """运行环境信息，以 400 状态返回"""
    settings = get_config()
    return JSONResponse(
        {
            "version": __version__,
            "pillow": PIL.__version__,
            "storage_backend": settings.storage.BACKEND,
            "auto_webp": settings.processing.AUTO_WEBP,
            "font_cache": load_font.cache_info()._asdict(),
        },
        status_code=400,
    )


@app.get("/{path:path}")
async def process_image(
    path: str,
    request: Request,
    buffer_store: BufferStore = Depends(get_buffer_store),
) -> Response:
    settings = get_config()
    auto_webp = settings.processing.AUTO_WEBP and "image/webp" in request.headers.get(
        "accept", ""
    )

    result = await handle_request(
        path,
        dict(request.query_params),
        buffer_store,
        auto_webp=auto_webp,
        intercept=bypass if settings.storage.BYPASS_RAW_FETCH else None,
    )

    headers = {"Vary": "Accept"} if settings.processing.AUTO_WEBP else None
    return Response(content=result.data, media_type=result.content_type, headers=headers)


def main() -> None:
    """启动 HTTP 服务"""
    settings = get_config()
    configure_logging(settings.logging)
    logger.info(f"启动图片处理服务 {settings.server.HOST}:{settings.server.PORT}")
    uvicorn.run(app, host=settings.server.HOST, port=settings.server.PORT)


if __name__ == "__main__":
    main()
