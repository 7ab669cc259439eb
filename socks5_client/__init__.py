"""
SOCKS5 客户端 (RFC 1928)

在 asyncio 双工通道上完成 SOCKS5 方法协商、请求发送和应答解析。

使用示例：
    from socks5_client import Config, Socks5Stream

    config = Config().set_skip_auth(True).set_connect_timeout(10)
    stream = await Socks5Stream.connect('127.0.0.1:1080', 'perdu.com', 80, config)
    stream.write(b'GET / HTTP/1.0\\r\\n\\r\\n')
    await stream.drain()

    # 或者使用已经建立的通道
    stream = await Socks5Stream.use_channel(reader, writer, None, config)
    bound = await stream.request(Socks5Command.CONNECT, TargetAddr.parse('93.184.216.34:443'))
"""

from .auth import NO_AUTH, AuthenticationMethod, NoAuthentication, PasswordAuthentication
from .client import RequestState, Socks5Stream, encode_method_selection, encode_request
from .config import Config, load_client_config, load_config
from .consts import AddressType, AuthMethodCode, SOCKS5_VERSION, Socks5Command
from .errors import (
    AddressTypeNotSupported, AuthenticationNotSupported, ExceededMaxDomainLen,
    InvalidSessionState, InvalidTargetAddress, MissingTargetAddress,
    NegotiationError, ProtocolError, ReplyError, SocksError, SocksReplyError,
    TransportError, UnknownReplyCode, UnsupportedSocksVersion
)
from .observer import HandshakeObserver, LoggingObserver
from .stream import map_connect_error, parse_proxy_address, tcp_connect
from .target_addr import DomainAddr, IpAddr, TargetAddr, read_target_addr

__version__ = '1.0.0'

__all__ = [
    'Socks5Stream', 'RequestState', 'encode_request', 'encode_method_selection',
    'Config', 'load_config', 'load_client_config',
    'SOCKS5_VERSION', 'Socks5Command', 'AddressType', 'AuthMethodCode',
    'AuthenticationMethod', 'NoAuthentication', 'PasswordAuthentication', 'NO_AUTH',
    'TargetAddr', 'IpAddr', 'DomainAddr', 'read_target_addr',
    'HandshakeObserver', 'LoggingObserver',
    'tcp_connect', 'parse_proxy_address', 'map_connect_error',
    'ReplyError', 'SocksError', 'TransportError', 'SocksReplyError',
    'ProtocolError', 'UnsupportedSocksVersion', 'UnknownReplyCode',
    'AddressTypeNotSupported', 'MissingTargetAddress', 'InvalidSessionState',
    'ExceededMaxDomainLen', 'NegotiationError', 'AuthenticationNotSupported',
    'InvalidTargetAddress',
]
