"""
SOCKS5 客户端 - 传输适配模块

负责建立到代理服务器的 TCP 连接，并把能明确对应的底层连接错误
映射到 ReplyError:

    ConnectionRefusedError          -> CONNECTION_REFUSED
    ConnectionAbortedError          -> CONNECTION_NOT_ALLOWED
    ConnectionResetError            -> CONNECTION_NOT_ALLOWED
    OSError(ENOTCONN)               -> NETWORK_UNREACHABLE
    超过 connect_timeout            -> CONNECTION_TIMEOUT

其他错误不做解释，包装为 TransportError 原样向上传递。
"""

import asyncio
import errno
import logging
import operator
from typing import Optional, Tuple, Union

from .errors import (
    InvalidTargetAddress, ReplyError, SocksReplyError, TransportError
)

logger = logging.getLogger('socks5-client-stream')

ProxyAddress = Union[str, Tuple[str, int]]


def parse_proxy_address(address: ProxyAddress) -> Tuple[str, int]:
    """
    解析代理地址

    Args:
        address: "host:port"、"[v6]:port" 字符串或 (host, port) 元组

    Returns:
        Tuple[str, int]: (主机, 端口)

    Raises:
        InvalidTargetAddress: 格式错误或端口无效
    """
    if isinstance(address, tuple):
        if len(address) < 2:
            raise InvalidTargetAddress(f"无效的代理地址: {address!r}")
        host, port = address[0], address[1]
    elif isinstance(address, str):
        host, sep, port = address.strip().rpartition(':')
        if not sep:
            raise InvalidTargetAddress(f"代理地址缺少端口: {address!r}")
        if host.startswith('[') and host.endswith(']'):
            host = host[1:-1]
    else:
        raise InvalidTargetAddress(f"无效的代理地址: {address!r}")

    try:
        port = int(port) if isinstance(port, str) else operator.index(port)
    except (TypeError, ValueError):
        raise InvalidTargetAddress(f"无效的代理端口: {port!r}") from None
    if not host or not 0 < port <= 0xFFFF:
        raise InvalidTargetAddress(f"无效的代理地址: {address!r}")
    return str(host), port


def map_connect_error(exc: BaseException) -> Exception:
    """
    将拨号时的异常转换为 SocksReplyError 或 TransportError

    Args:
        exc: asyncio.open_connection 抛出的异常

    Returns:
        Exception: 应该抛给调用方的异常
    """
    if isinstance(exc, ConnectionRefusedError):
        return SocksReplyError(ReplyError.CONNECTION_REFUSED)
    if isinstance(exc, (ConnectionAbortedError, ConnectionResetError)):
        return SocksReplyError(ReplyError.CONNECTION_NOT_ALLOWED)
    if isinstance(exc, OSError) and exc.errno == errno.ENOTCONN:
        return SocksReplyError(ReplyError.NETWORK_UNREACHABLE)
    return TransportError("连接代理失败", exc)


async def tcp_connect(address: ProxyAddress, timeout: Optional[float] = None
                      ) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """
    打开到代理的可靠有序字节流

    代理主机名的 DNS 解析交给 asyncio / 操作系统解析器。

    Args:
        address: 代理地址
        timeout: 拨号超时（秒），None 表示不限制

    Returns:
        Tuple[asyncio.StreamReader, asyncio.StreamWriter]: 通道读写器

    Raises:
        SocksReplyError: 可以映射为 ReplyError 的连接错误
        TransportError: 其他连接错误
    """
    host, port = parse_proxy_address(address)
    logger.debug(f"正在连接到代理 {host}:{port} (timeout={timeout})")

    # 只有 connect_timeout 到期才算 CONNECTION_TIMEOUT，
    # 内核报告的 ETIMEDOUT 等错误仍按 map_connect_error 处理
    dial = asyncio.ensure_future(asyncio.open_connection(host, port))
    try:
        done, _ = await asyncio.wait({dial}, timeout=timeout)
    except asyncio.CancelledError:
        dial.cancel()
        raise

    if not done:
        dial.cancel()
        logger.warning(f"连接代理超时: {host}:{port}")
        raise SocksReplyError(ReplyError.CONNECTION_TIMEOUT)

    try:
        return dial.result()
    except OSError as e:
        logger.warning(f"连接代理失败: {host}:{port}, error={e}")
        raise map_connect_error(e) from e
