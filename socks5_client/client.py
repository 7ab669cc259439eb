"""
SOCKS5 客户端会话模块

本模块定义了 Socks5Stream，在调用方提供的双工通道上完成 SOCKS5 握手:

工作流程:
1. 通过传输适配层连接代理（或直接使用已建立的通道）
2. 认证方法协商（skip_auth 时跳过，不交换任何字节）
3. 编码并发送请求帧
4. 解析代理应答，得到绑定地址或类型化的失败

请求状态机（每个会话最多一个请求）:

    IDLE -> HEADER_SENT -> REPLY_RECEIVED   (成功)
    IDLE -> HEADER_SENT -> FAILED           (失败)

成功之后会话就是一个不透明的双工字节通道，之后的应用数据不再有额外的帧格式。
"""

import asyncio
import logging
from contextlib import contextmanager
from enum import Enum
from typing import List, Optional, Tuple

from .auth import NO_AUTH, AuthenticationMethod
from .config import Config
from .consts import (
    AuthMethodCode, MAX_REQUEST_SIZE, REPLY_HEADER_SIZE, RESERVED,
    SOCKS5_VERSION, Socks5Command, auth_method_name
)
from .errors import (
    InvalidSessionState, MissingTargetAddress, NegotiationError,
    ProtocolError, ReplyError, SocksReplyError, TransportError,
    UnsupportedSocksVersion
)
from .observer import HandshakeObserver, LoggingObserver
from .stream import ProxyAddress, parse_proxy_address, tcp_connect
from .target_addr import UNSPECIFIED_ADDR, TargetAddr, read_target_addr

logger = logging.getLogger('socks5-client')


class RequestState(Enum):
    IDLE = 'idle'
    HEADER_SENT = 'header_sent'
    REPLY_RECEIVED = 'reply_received'
    FAILED = 'failed'


# ============================================================================
# 帧编码
# ============================================================================

def _resolve_target(command: int, target: Optional[TargetAddr]) -> TargetAddr:
    if target is not None:
        return target
    # 由代理在应答中报告实际的中继地址
    if command == Socks5Command.UDP_ASSOCIATE:
        return UNSPECIFIED_ADDR
    raise MissingTargetAddress(command)


def encode_method_selection(methods: List[AuthenticationMethod]) -> bytes:
    """
    构造方法协商请求

    帧格式: [VER(1B)] [NMETHODS(1B)] [METHODS(NMETHODS)]
    """
    if not 0 < len(methods) <= 255:
        raise ProtocolError(f"认证方法数量无效: {len(methods)}")
    return bytes([SOCKS5_VERSION, len(methods)] + [int(m.code) for m in methods])


def encode_request(command: int, target: Optional[TargetAddr]) -> bytes:
    """
    构造连接请求帧

    帧格式: [VER(1B)] [CMD(1B)] [RSV(1B)=0x00] [ATYP(1B)] [DST.ADDR] [DST.PORT(2B, 大端序)]

    在按最大帧长度分配的固定缓冲区中编码，只返回实际填充的前缀。

    Args:
        command: 命令代码
        target: 目标地址；UDP_ASSOCIATE 可以为 None（使用 0.0.0.0:0）

    Returns:
        bytes: 请求帧

    Raises:
        MissingTargetAddress: 命令需要目标地址但 target 为 None
        ExceededMaxDomainLen: 域名超过 255 字节
        AddressTypeNotSupported: IPv6 目标
    """
    target = _resolve_target(command, target)

    buf = bytearray(MAX_REQUEST_SIZE)
    buf[0] = SOCKS5_VERSION
    buf[1] = command
    buf[2] = RESERVED
    end = target.encode_into(buf, 3)
    return bytes(buf[:end])


@contextmanager
def _channel_io(action: str):
    """把通道上的 I/O 异常转换为 TransportError"""
    try:
        yield
    except asyncio.IncompleteReadError as e:
        raise TransportError(f"{action}: 连接在报文读完之前关闭", e) from e
    except OSError as e:
        raise TransportError(action, e) from e


# ============================================================================
# 客户端会话
# ============================================================================

class Socks5Stream:
    """
    SOCKS5 客户端会话

    会话独占底层通道和自己的 Config 副本，不和其他会话共享任何可变状态。

    Attributes:
        reader: 通道读取器
        writer: 通道写入器
        config: 配置副本
        observer: 握手检查点观察者
        auth_methods: 候选认证方法，NO_AUTH 总是第一个
        auth_method: 协商出的认证方法，未协商时为 None
        target_addr: 请求的目标地址，请求开始时设置且只设置一次
        command: 已发出的命令
        bound_addr: 代理报告的绑定地址
        state: 请求状态
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 config: Optional[Config] = None,
                 observer: Optional[HandshakeObserver] = None):
        self.reader = reader
        self.writer = writer
        self.config = (config or Config()).copy()
        self.observer = observer or LoggingObserver()

        self.auth_methods: List[AuthenticationMethod] = [NO_AUTH]
        self.auth_method: Optional[AuthenticationMethod] = None

        self.target_addr: Optional[TargetAddr] = None
        self.command: Optional[Socks5Command] = None
        self.bound_addr: Optional[TargetAddr] = None
        self.state = RequestState.IDLE
        self._bind_accepted = False

    def __repr__(self):
        return (f"Socks5Stream(state={self.state.value}, target={self.target_addr}, "
                f"bound={self.bound_addr})")

    # ------------------------------------------------------------------
    # 构造
    # ------------------------------------------------------------------

    @classmethod
    async def use_channel(cls, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                          auth: Optional[AuthenticationMethod] = None,
                          config: Optional[Config] = None,
                          observer: Optional[HandshakeObserver] = None) -> 'Socks5Stream':
        """
        在已建立的通道上构造会话

        NO_AUTH 总是被首先提供；调用方给出的额外方法追加在其后。
        config.skip_auth 为 False 时立即执行方法协商。

        Args:
            reader: 通道读取器
            writer: 通道写入器
            auth: 额外提供的认证方法（可选）
            config: 配置（可选）
            observer: 握手观察者（可选）

        Returns:
            Socks5Stream: 会话对象。失败时通道会被关闭
        """
        stream = cls(reader, writer, config, observer)
        if auth is not None and auth not in stream.auth_methods:
            stream.auth_methods.append(auth)

        if stream.config.skip_auth:
            stream.observer.on_negotiated(None)
            return stream

        try:
            await stream.negotiate()
        except BaseException:
            stream._abort()
            raise
        return stream

    @classmethod
    async def connect(cls, proxy_address: ProxyAddress, target_host, target_port,
                      config: Optional[Config] = None,
                      observer: Optional[HandshakeObserver] = None) -> 'Socks5Stream':
        """
        连接代理并对目标发出 CONNECT 请求

        Args:
            proxy_address: 代理地址，"host:port" 或 (host, port)
            target_host: 目标主机（域名或 IP 字面量）
            target_port: 目标端口
            config: 配置（可选）
            observer: 握手观察者（可选）

        Returns:
            Socks5Stream: 已建立隧道的会话

        Raises:
            InvalidTargetAddress: 代理或目标地址无法解析
            SocksReplyError: 拨号失败（已映射）或代理返回失败应答
            TransportError: 其他传输错误
            SocksError: 协商/请求/应答中的其他失败
        """
        config = (config or Config()).copy()
        observer = observer or LoggingObserver()

        target = TargetAddr.from_host_port(target_host, target_port)
        proxy = parse_proxy_address(proxy_address)

        reader, writer = await tcp_connect(proxy, timeout=config.connect_timeout)
        observer.on_dial_complete(proxy)

        stream = await cls.use_channel(reader, writer, None, config, observer)
        try:
            await stream.request(Socks5Command.CONNECT, target)
        except BaseException:
            stream._abort()
            raise
        return stream

    # ------------------------------------------------------------------
    # 方法协商
    # ------------------------------------------------------------------

    async def negotiate(self) -> AuthenticationMethod:
        """
        执行认证方法协商

        客户端 -> 代理: [VER, NMETHODS, METHODS...]
        代理 -> 客户端: [VER, METHOD]

        Returns:
            AuthenticationMethod: 协商出的方法，会话剩余时间内固定不变

        Raises:
            UnsupportedSocksVersion: 应答版本不是 0x05
            NegotiationError: 代理返回 0xFF 或选择了未提供的方法
        """
        if self.auth_method is not None:
            raise InvalidSessionState("认证方法已经协商过")

        frame = encode_method_selection(self.auth_methods)
        logger.debug(f"发送方法协商: {[auth_method_name(m.code) for m in self.auth_methods]}")

        with _channel_io("发送方法协商失败"):
            self.writer.write(frame)
            await self.writer.drain()

        with _channel_io("读取方法协商应答失败"):
            version, method = await self.reader.readexactly(2)

        if version != SOCKS5_VERSION:
            raise UnsupportedSocksVersion(version)

        if method == AuthMethodCode.NO_ACCEPTABLE:
            logger.warning("代理没有可接受的认证方法")
            raise NegotiationError(method)

        chosen = next((m for m in self.auth_methods if m.code == method), None)
        if chosen is None:
            raise NegotiationError(method, f"代理选择了未提供的认证方法 0x{method:02x}")

        with _channel_io("认证子协商失败"):
            await chosen.exchange(self.reader, self.writer)

        self.auth_method = chosen
        self.observer.on_negotiated(method)
        return chosen

    # ------------------------------------------------------------------
    # 请求 / 应答
    # ------------------------------------------------------------------

    async def request(self, cmd: int, target_addr: Optional[TargetAddr] = None) -> TargetAddr:
        """
        发出请求并读取应答

        Args:
            cmd: Socks5Command
            target_addr: 目标地址；UDP_ASSOCIATE 可以省略

        Returns:
            TargetAddr: 代理报告的绑定地址

        Raises:
            InvalidSessionState: 本会话已经发出过请求
            SocksError: 编码、传输、协议或代理报告的失败
        """
        if self.state is not RequestState.IDLE:
            raise InvalidSessionState(f"会话已发出过请求 (state={self.state.value})")

        try:
            cmd = Socks5Command(cmd)
        except ValueError:
            raise ProtocolError(f"未知的命令: {cmd!r}") from None

        if isinstance(target_addr, tuple):
            target_addr = TargetAddr.from_socket_address(target_addr)

        self.command = cmd
        self.target_addr = target_addr
        try:
            self.target_addr = _resolve_target(cmd, target_addr)
            await self.request_header(cmd)
            self.state = RequestState.HEADER_SENT
            bound = await self.read_request_reply()
        except BaseException:
            self.state = RequestState.FAILED
            raise

        self.bound_addr = bound
        self.state = RequestState.REPLY_RECEIVED
        return bound

    async def request_header(self, cmd: int) -> bytes:
        """
        编码请求帧并写入通道，随后显式 drain

        编码失败（域名过长、IPv6、缺少目标）时不会向通道写入任何字节。

        Returns:
            bytes: 已发送的请求帧
        """
        target = _resolve_target(cmd, self.target_addr)
        header = encode_request(cmd, target)

        with _channel_io("发送请求失败"):
            self.writer.write(header)
            await self.writer.drain()

        self.observer.on_request_sent(cmd, target, header)
        return header

    async def read_request_reply(self) -> TargetAddr:
        """
        读取并解析代理应答

        应答格式: [VER(1B)] [REP(1B)] [RSV(1B)] [ATYP(1B)] [BND.ADDR] [BND.PORT(2B)]

        Returns:
            TargetAddr: 绑定地址

        Raises:
            UnsupportedSocksVersion: VER 不是 0x05
            UnknownReplyCode: REP 超出 0x00-0x08
            SocksReplyError: REP 表示失败
            AddressTypeNotSupported: ATYP 为 IPv6 或未知值
            TransportError: 读取失败或连接过早关闭
        """
        with _channel_io("读取应答失败"):
            version, rep, _, atyp = await self.reader.readexactly(REPLY_HEADER_SIZE)

        if version != SOCKS5_VERSION:
            raise UnsupportedSocksVersion(version)

        reply = ReplyError.from_code(rep)
        if reply is not ReplyError.SUCCEEDED:
            logger.warning(f"代理返回失败应答: {reply} (0x{rep:02x})")
            raise SocksReplyError(reply)

        with _channel_io("读取绑定地址失败"):
            bound = await read_target_addr(self.reader, atyp)

        self.observer.on_reply_parsed(bound)
        return bound

    async def accept_bind(self) -> TargetAddr:
        """
        等待 BIND 的第二个应答

        RFC 1928: BIND 的第一个应答报告代理监听的地址，目标连入后代理再发送
        第二个应答，报告连入方的地址。

        Returns:
            TargetAddr: 连入方的地址
        """
        if self.command != Socks5Command.BIND or self.state is not RequestState.REPLY_RECEIVED:
            raise InvalidSessionState("只有成功的 BIND 请求之后才能等待连入")
        if self._bind_accepted:
            raise InvalidSessionState("BIND 的第二个应答已经读取过")

        try:
            peer = await self.read_request_reply()
        except BaseException:
            self.state = RequestState.FAILED
            raise

        self._bind_accepted = True
        logger.info(f"BIND 连入: {peer}")
        return peer

    # ------------------------------------------------------------------
    # 隧道建立后的双工通道
    # ------------------------------------------------------------------

    def _ensure_established(self):
        if self.state is not RequestState.REPLY_RECEIVED:
            raise InvalidSessionState(f"隧道尚未建立 (state={self.state.value})")

    async def read(self, n: int = -1) -> bytes:
        self._ensure_established()
        return await self.reader.read(n)

    async def readexactly(self, n: int) -> bytes:
        self._ensure_established()
        return await self.reader.readexactly(n)

    def write(self, data: bytes):
        self._ensure_established()
        self.writer.write(data)

    async def drain(self):
        await self.writer.drain()

    def close(self):
        self.writer.close()

    async def wait_closed(self):
        await self.writer.wait_closed()

    def into_inner(self) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """交出底层读写器"""
        return self.reader, self.writer

    def _abort(self):
        logger.debug(f"握手失败，关闭通道: {self!r}")
        self.writer.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()
        await self.wait_closed()
