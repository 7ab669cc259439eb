"""
SOCKS5 客户端 - 目标地址模块

TargetAddr 描述“要连接到哪里”，有两种形式:
- IpAddr: 已解析的 IP 地址 + 端口
- DomainAddr: 未解析的域名 + 端口，由代理服务器负责 DNS 解析

线路格式中的地址部分:
┌─────────┬─────────────────────────────────┬──────────┐
│ ATYP    │ ADDR                            │ PORT     │
│ 1 字节  │ IPv4: 4 字节                     │ 2 字节   │
│         │ 域名: 长度(1 字节) + 名称         │ 大端序   │
└─────────┴─────────────────────────────────┴──────────┘

IPv6 (ATYP=0x04) 可以被表示，但在编码和解码时都会被拒绝。
"""

import asyncio
import ipaddress
import operator
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple, Union

from .consts import AddressType, MAX_DOMAIN_LEN
from .errors import (
    AddressTypeNotSupported, ExceededMaxDomainLen,
    InvalidTargetAddress, ProtocolError
)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

PORT_SIZE = 2


def _check_room(buf: bytearray, offset: int, needed: int):
    """确认缓冲区从 offset 起还能写入 needed 字节"""
    if offset < 0 or offset + needed > len(buf):
        raise ProtocolError(
            f"请求缓冲区空间不足: offset={offset}, needed={needed}, size={len(buf)}"
        )


def _validate_port(port) -> int:
    if isinstance(port, bool):
        raise InvalidTargetAddress(f"无效的端口: {port!r}")
    try:
        # 字符串按十进制解析，其他类型必须是整数，80.9 之类直接拒绝
        value = int(port) if isinstance(port, str) else operator.index(port)
    except (TypeError, ValueError):
        raise InvalidTargetAddress(f"无效的端口: {port!r}") from None
    if not 0 <= value <= 0xFFFF:
        raise InvalidTargetAddress(f"端口超出范围: {value}")
    return value


class TargetAddr(ABC):
    """
    连接目标的描述（IpAddr 或 DomainAddr 的公共基类）

    不要直接实例化，使用 from_host_port / parse / from_socket_address
    或直接构造子类。
    """

    port: int

    @property
    @abstractmethod
    def atyp(self) -> AddressType:
        pass

    @abstractmethod
    def encode_into(self, buf: bytearray, offset: int) -> int:
        """
        将 ATYP + 地址 + 端口写入 buf

        Args:
            buf: 目标缓冲区
            offset: 起始写入位置

        Returns:
            int: 写入结束后的位置
        """

    @abstractmethod
    def to_socket_address(self) -> Tuple[str, int]:
        pass

    @classmethod
    def from_host_port(cls, host, port) -> 'TargetAddr':
        """
        将主机/端口转换为 TargetAddr

        数字形式的地址（IPv4/IPv6 字面量或 ipaddress 对象）总是得到 IpAddr，
        其他主机名总是得到 DomainAddr。

        Args:
            host: 主机名、IP 字面量或 ipaddress 对象
            port: 端口号

        Returns:
            TargetAddr: 转换结果

        Raises:
            InvalidTargetAddress: 主机为空或端口无效
        """
        port = _validate_port(port)

        if isinstance(host, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            return IpAddr(host, port)

        if isinstance(host, bytes):
            try:
                host = host.decode('utf-8')
            except UnicodeDecodeError:
                raise InvalidTargetAddress(f"主机名不是有效的 UTF-8: {host!r}") from None

        if not isinstance(host, str):
            raise InvalidTargetAddress(f"无效的主机: {host!r}")

        host = host.strip()
        if host.startswith('[') and host.endswith(']'):
            host = host[1:-1]
        if not host:
            raise InvalidTargetAddress("主机名为空")

        try:
            return IpAddr(ipaddress.ip_address(host), port)
        except ValueError:
            return DomainAddr(host, port)

    @classmethod
    def from_socket_address(cls, address: Tuple) -> 'TargetAddr':
        """从 (host, port) 或 (host, port, flowinfo, scope_id) 元组构造"""
        if not isinstance(address, tuple) or len(address) < 2:
            raise InvalidTargetAddress(f"无效的套接字地址: {address!r}")
        return cls.from_host_port(address[0], address[1])

    @classmethod
    def parse(cls, text: str) -> 'TargetAddr':
        """
        解析 "host:port" 或 "[v6]:port" 形式的字符串

        Raises:
            InvalidTargetAddress: 缺少端口或格式错误
        """
        if not isinstance(text, str):
            raise InvalidTargetAddress(f"无效的地址: {text!r}")
        host, sep, port = text.strip().rpartition(':')
        if not sep:
            raise InvalidTargetAddress(f"地址缺少端口: {text!r}")
        return cls.from_host_port(host, port)


@dataclass(frozen=True)
class IpAddr(TargetAddr):
    """已解析的 IP 地址 + 端口"""
    ip: IPAddress
    port: int

    @property
    def atyp(self) -> AddressType:
        if self.ip.version == 4:
            return AddressType.IPV4
        return AddressType.IPV6

    def encode_into(self, buf: bytearray, offset: int) -> int:
        if self.ip.version != 4:
            raise AddressTypeNotSupported(AddressType.IPV6)

        packed = self.ip.packed
        _check_room(buf, offset, 1 + len(packed) + PORT_SIZE)

        buf[offset] = AddressType.IPV4
        offset += 1
        buf[offset:offset + len(packed)] = packed
        offset += len(packed)
        struct.pack_into('>H', buf, offset, self.port)
        return offset + PORT_SIZE

    def to_socket_address(self) -> Tuple[str, int]:
        return str(self.ip), self.port

    def __str__(self):
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


@dataclass(frozen=True)
class DomainAddr(TargetAddr):
    """未解析的域名 + 端口，DNS 解析在代理端完成"""
    domain: str
    port: int

    @property
    def atyp(self) -> AddressType:
        return AddressType.DOMAIN

    def encode_into(self, buf: bytearray, offset: int) -> int:
        name = self.domain.encode('utf-8')
        if len(name) > MAX_DOMAIN_LEN:
            raise ExceededMaxDomainLen(len(name))

        _check_room(buf, offset, 2 + len(name) + PORT_SIZE)

        buf[offset] = AddressType.DOMAIN
        buf[offset + 1] = len(name)
        offset += 2
        buf[offset:offset + len(name)] = name
        offset += len(name)
        struct.pack_into('>H', buf, offset, self.port)
        return offset + PORT_SIZE

    def to_socket_address(self) -> Tuple[str, int]:
        return self.domain, self.port

    def __str__(self):
        return f"{self.domain}:{self.port}"


UNSPECIFIED_ADDR = IpAddr(ipaddress.IPv4Address(0), 0)


async def read_target_addr(reader: asyncio.StreamReader, atyp: int) -> TargetAddr:
    """
    从应答中读取 BND.ADDR + BND.PORT

    Args:
        reader: 通道读取器，已经读过应答的前 4 个字节
        atyp: 应答头中的 ATYP

    Returns:
        TargetAddr: 代理报告的绑定地址

    Raises:
        AddressTypeNotSupported: IPv6 或未知的 ATYP
        ProtocolError: 域名不是有效的 UTF-8
        asyncio.IncompleteReadError: 连接在报文读完之前关闭
    """
    if atyp == AddressType.IPV4:
        data = await reader.readexactly(4 + PORT_SIZE)
        port, = struct.unpack('>H', data[4:])
        return IpAddr(ipaddress.IPv4Address(data[:4]), port)

    if atyp == AddressType.DOMAIN:
        length = (await reader.readexactly(1))[0]
        data = await reader.readexactly(length + PORT_SIZE)
        try:
            domain = data[:length].decode('utf-8')
        except UnicodeDecodeError:
            raise ProtocolError(f"应答中的域名不是有效的 UTF-8: {data[:length]!r}") from None
        port, = struct.unpack('>H', data[length:])
        return DomainAddr(domain, port)

    raise AddressTypeNotSupported(atyp)
