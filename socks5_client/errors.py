"""
SOCKS5 客户端 - 错误类型模块

版本: 1.0.0

错误分类:
1. 传输错误 (TransportError) - 底层通道的 I/O 失败
2. 协议错误 (ProtocolError) - 版本不符、未知应答码、不支持的地址类型、缺少目标地址
3. 编码限制 (ExceededMaxDomainLen) - 域名超过 255 字节
4. 代理报告的失败 (SocksReplyError) - 非成功的 REP 应答码
5. 协商失败 (NegotiationError) - 没有双方都接受的认证方法

本地拨号失败中能够明确对应的部分（连接被拒绝、中止、重置、未连接）
会被归一化为 ReplyError，调用方只需要处理一套错误分类。
"""

from enum import Enum
from typing import Optional


# ============================================================================
# 应答码
# ============================================================================

class ReplyError(Enum):
    """
    SOCKS5 应答码

    0x00-0x08 每个线路代码恰好对应一个成员。CONNECTION_TIMEOUT 没有线路代码，
    仅在本地拨号超时时产生。
    """
    SUCCEEDED = "Succeeded"
    GENERAL_FAILURE = "General failure"
    CONNECTION_NOT_ALLOWED = "Connection not allowed by ruleset"
    NETWORK_UNREACHABLE = "Network unreachable"
    HOST_UNREACHABLE = "Host unreachable"
    CONNECTION_REFUSED = "Connection refused"
    CONNECTION_TIMEOUT = "Connection timeout"
    TTL_EXPIRED = "TTL expired"
    COMMAND_NOT_SUPPORTED = "Command not supported"
    ADDRESS_TYPE_NOT_SUPPORTED = "Address type not supported"

    @property
    def code(self) -> Optional[int]:
        """线路代码，本地专用的成员返回 None"""
        return _CODE_BY_REPLY.get(self)

    @classmethod
    def from_code(cls, code: int) -> 'ReplyError':
        """
        将 REP 字节转换为 ReplyError

        Args:
            code: 应答中的 REP 字节

        Returns:
            ReplyError: 对应的应答码

        Raises:
            UnknownReplyCode: 代码不在 0x00-0x08 范围内
        """
        try:
            return _REPLY_BY_CODE[code]
        except KeyError:
            raise UnknownReplyCode(code) from None

    def __str__(self):
        return self.value


_REPLY_BY_CODE = {
    0x00: ReplyError.SUCCEEDED,
    0x01: ReplyError.GENERAL_FAILURE,
    0x02: ReplyError.CONNECTION_NOT_ALLOWED,
    0x03: ReplyError.NETWORK_UNREACHABLE,
    0x04: ReplyError.HOST_UNREACHABLE,
    0x05: ReplyError.CONNECTION_REFUSED,
    0x06: ReplyError.TTL_EXPIRED,
    0x07: ReplyError.COMMAND_NOT_SUPPORTED,
    0x08: ReplyError.ADDRESS_TYPE_NOT_SUPPORTED,
}

_CODE_BY_REPLY = {reply: code for code, reply in _REPLY_BY_CODE.items()}


# ============================================================================
# 异常层次
# ============================================================================

class SocksError(Exception):
    """所有 SOCKS5 客户端错误的基类"""


class TransportError(SocksError):
    """
    底层通道的 I/O 失败（未被归类为 ReplyError 的部分）

    Attributes:
        original: 原始异常对象
    """

    def __init__(self, message: str, original: Optional[BaseException] = None):
        if original is not None:
            message = f"{message}: {original}"
        super().__init__(message)
        self.original = original


class SocksReplyError(SocksError):
    """
    代理返回（或本地拨号映射出）的失败应答

    Attributes:
        reply: ReplyError 成员
    """

    def __init__(self, reply: ReplyError):
        super().__init__(f"Error with reply: {reply}.")
        self.reply = reply


class ProtocolError(SocksError):
    """对端违反 SOCKS5 协议或请求无法按协议编码"""


class UnsupportedSocksVersion(ProtocolError):
    """版本字节不是 0x05"""

    def __init__(self, version: int):
        super().__init__(f"Unsupported SOCKS version `{version}`.")
        self.version = version


class UnknownReplyCode(ProtocolError):
    """REP 字节超出已定义的 0x00-0x08 范围"""

    def __init__(self, code: int):
        super().__init__(f"Unknown reply code `0x{code:02x}`.")
        self.code = code


class AddressTypeNotSupported(ProtocolError):
    """本客户端不支持的 ATYP（IPv6 或未知值）"""

    def __init__(self, atyp: int):
        super().__init__(f"Address type `0x{atyp:02x}` not supported.")
        self.atyp = atyp


class MissingTargetAddress(ProtocolError):
    """命令需要目标地址但未提供"""

    def __init__(self, command: int):
        super().__init__(f"Command `0x{command:02x}` requires a target address.")
        self.command = command


class InvalidSessionState(ProtocolError):
    """在当前会话状态下不允许的操作"""


class ExceededMaxDomainLen(SocksError):
    """域名长度超过单字节长度字段能表达的 255 字节"""

    def __init__(self, length: int):
        super().__init__(f"Domain exceeded max sequence length ({length} > 255)")
        self.length = length


class NegotiationError(SocksError):
    """
    认证方法协商失败

    Attributes:
        method: 代理选择的方法代码（0xFF 表示没有可接受的方法）
    """

    def __init__(self, method: int, message: Optional[str] = None):
        super().__init__(message or f"No acceptable authentication method (proxy chose 0x{method:02x}).")
        self.method = method


class AuthenticationNotSupported(NegotiationError):
    """代理选择了本客户端没有实现子协商的认证方法"""

    def __init__(self, method: int):
        super().__init__(method, f"Authentication method `0x{method:02x}` sub-negotiation is not supported.")


class InvalidTargetAddress(SocksError, ValueError):
    """无法把主机/端口描述转换为 TargetAddr"""
