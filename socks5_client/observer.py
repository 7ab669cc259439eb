"""
SOCKS5 客户端 - 握手观察者模块

会话在以下检查点通知观察者:
1. 拨号完成 (on_dial_complete)
2. 方法协商结果 (on_negotiated)
3. 请求已发送 (on_request_sent)
4. 应答已解析 (on_reply_parsed)

观察者按会话注入，不依赖任何进程级的全局状态。
"""

import logging
from typing import Optional, Tuple

from .consts import address_type_name, auth_method_name, command_name
from .target_addr import TargetAddr


class HandshakeObserver:
    """空实现，子类按需覆盖"""

    def on_dial_complete(self, proxy: Tuple[str, int]):
        pass

    def on_negotiated(self, method: Optional[int]):
        """method 为 None 表示协商被 skip_auth 跳过"""

    def on_request_sent(self, command: int, target: TargetAddr, header: bytes):
        pass

    def on_reply_parsed(self, bound: TargetAddr):
        pass


class LoggingObserver(HandshakeObserver):
    """把检查点写入日志的默认观察者"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('socks5-client')

    def on_dial_complete(self, proxy):
        self.logger.info(f"已连接到代理 {proxy[0]}:{proxy[1]}")

    def on_negotiated(self, method):
        if method is None:
            self.logger.debug("跳过认证方法协商 (skip_auth)")
        else:
            self.logger.debug(f"认证方法协商完成: {auth_method_name(method)}")

    def on_request_sent(self, command, target, header):
        self.logger.debug(
            f"请求已发送: cmd={command_name(command)}, "
            f"atyp={address_type_name(target.atyp)}, target={target}, {len(header)} 字节"
        )

    def on_reply_parsed(self, bound):
        self.logger.info(
            f"代理应答成功，绑定地址: {bound} ({address_type_name(bound.atyp)})"
        )
