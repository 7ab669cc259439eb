"""
SOCKS5 客户端 - 协议常量模块
定义 RFC 1928 线路格式使用的所有数值常量。

版本: 1.0.0

报文格式（所有多字节整数均为大端序，版本字节固定为 0x05）:

方法协商请求:
┌─────────┬────────────┬──────────────┐
│ VER     │ NMETHODS   │ METHODS      │
│ 1 字节  │  1 字节    │ 1 到 255 字节 │
└─────────┴────────────┴──────────────┘

连接请求 / 应答:
┌─────────┬────────────┬─────────┬─────────┬──────────┬──────────┐
│ VER     │ CMD / REP  │ RSV     │ ATYP    │ ADDR     │ PORT     │
│ 1 字节  │  1 字节    │ 1 字节  │ 1 字节  │ 可变长度  │ 2 字节   │
└─────────┴────────────┴─────────┴─────────┴──────────┴──────────┘
"""

from enum import IntEnum


# ============================================================================
# 协议常量
# ============================================================================

SOCKS5_VERSION = 0x05
RESERVED = 0x00

MAX_DOMAIN_LEN = 255
# VER + CMD + RSV + ATYP，长度字节 + 最长域名，端口
MAX_REQUEST_SIZE = 4 + 1 + MAX_DOMAIN_LEN + 2
REPLY_HEADER_SIZE = 4


# ============================================================================
# 枚举
# ============================================================================

class Socks5Command(IntEnum):
    """
    SOCKS5 请求命令

    - CONNECT: 建立到目标的 TCP 隧道
    - BIND: 请求代理监听一个端口等待目标反向连接
    - UDP_ASSOCIATE: 建立 UDP 中继关联
    """
    CONNECT = 0x01
    BIND = 0x02
    UDP_ASSOCIATE = 0x03


class AddressType(IntEnum):
    """请求/应答中的 ATYP 字段"""
    IPV4 = 0x01
    DOMAIN = 0x03
    IPV6 = 0x04


class AuthMethodCode(IntEnum):
    """方法协商阶段使用的认证方法代码"""
    NO_AUTH = 0x00
    GSSAPI = 0x01
    USERNAME_PASSWORD = 0x02
    NO_ACCEPTABLE = 0xFF


# ============================================================================
# 调试用名称表
# ============================================================================

COMMAND_NAMES = {
    Socks5Command.CONNECT: 'CONNECT',
    Socks5Command.BIND: 'BIND',
    Socks5Command.UDP_ASSOCIATE: 'UDP ASSOCIATE',
}

ADDRESS_TYPE_NAMES = {
    AddressType.IPV4: 'IP V4',
    AddressType.DOMAIN: 'DOMAINNAME',
    AddressType.IPV6: 'IP V6',
}

AUTH_METHOD_NAMES = {
    AuthMethodCode.NO_AUTH: 'NO AUTHENTICATION REQUIRED',
    AuthMethodCode.GSSAPI: 'GSSAPI',
    AuthMethodCode.USERNAME_PASSWORD: 'USERNAME/PASSWORD',
    AuthMethodCode.NO_ACCEPTABLE: 'NO ACCEPTABLE METHODS',
}


def command_name(code: int) -> str:
    """返回命令代码的可读名称"""
    return COMMAND_NAMES.get(code, f'UNKNOWN({code})')


def auth_method_name(code: int) -> str:
    """返回认证方法代码的可读名称"""
    return AUTH_METHOD_NAMES.get(code, f'UNKNOWN(0x{code:02x})')


def address_type_name(code: int) -> str:
    """返回地址类型代码的可读名称"""
    return ADDRESS_TYPE_NAMES.get(code, f'UNKNOWN(0x{code:02x})')
