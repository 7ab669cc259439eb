"""
SOCKS5 客户端 - 认证方法模块

每种可协商的认证方法都实现 exchange() 操作，在代理选定该方法之后
完成它自己的子协商。会话的控制流程不关心具体方法:
- NoAuthentication: 无需任何数据交换
- PasswordAuthentication: RFC 1929 用户名/密码子协商（本客户端未实现）
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .consts import AuthMethodCode
from .errors import AuthenticationNotSupported


class AuthenticationMethod(ABC):
    """
    认证方法基类

    Attributes:
        code: 方法协商中使用的一字节代码
    """

    code: int

    @abstractmethod
    async def exchange(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """
        代理选定本方法后执行的子协商

        Args:
            reader: 通道读取器
            writer: 通道写入器
        """


class NoAuthentication(AuthenticationMethod):
    """无需认证 (0x00)"""

    code = AuthMethodCode.NO_AUTH

    async def exchange(self, reader, writer):
        return None

    def __eq__(self, other):
        return isinstance(other, NoAuthentication)

    def __hash__(self):
        return hash(self.code)

    def __repr__(self):
        return 'NoAuthentication()'


@dataclass(frozen=True)
class PasswordAuthentication(AuthenticationMethod):
    """
    用户名/密码认证 (0x02)

    可以被提供给代理，但凭据交换的线路格式不在本客户端的范围内。
    如果代理真的选择了它，exchange() 会抛出 AuthenticationNotSupported。
    """
    username: str
    password: str = field(repr=False)

    code = AuthMethodCode.USERNAME_PASSWORD

    async def exchange(self, reader, writer):
        raise AuthenticationNotSupported(self.code)


NO_AUTH = NoAuthentication()
