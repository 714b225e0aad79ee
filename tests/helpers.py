"""
测试辅助工具：进程内 HTTP 服务
"""

import asyncio
from contextlib import asynccontextmanager

from aiohttp import web
from aiohttp.test_utils import TestServer


@asynccontextmanager
async def serve(*routes):
    """启动一个临时 HTTP 服务，返回其根地址"""
    app = web.Application()
    app.add_routes(list(routes))
    server = TestServer(app)
    await server.start_server()
    try:
        yield f"http://{server.host}:{server.port}"
    finally:
        await server.close()


async def echo(request: web.Request) -> web.Response:
    """原样返回请求体，并通过响应头回传请求信息"""
    body = await request.read()
    return web.Response(
        body=body,
        headers={
            "X-Method": request.method,
            "X-Query": request.rel_url.raw_query_string,
            "X-Content-Type": request.headers.get("Content-Type", ""),
            "X-Content-Length": request.headers.get("Content-Length", ""),
            "X-Transfer-Encoding": request.headers.get("Transfer-Encoding", ""),
        }
    )


@asynccontextmanager
async def serve_raw(payload: bytes):
    """启动一个原始 TCP 服务：读完请求头后写出 payload 并断开连接"""
    async def handle(reader, writer):
        await reader.readuntil(b"\r\n\r\n")
        writer.write(payload)
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.close()
        await server.wait_closed()
