"""
SOCKS5 客户端 - 配置管理模块

版本: 1.0.0

功能概述:
1. Config 值对象，控制握手行为（连接超时、跳过认证）
2. 从 YAML 配置文件加载 client 段
3. 环境变量覆盖

配置文件格式 (config.yaml):

    client:
      proxy: 127.0.0.1:1080
      connect_timeout: 10
      skip_auth: true
    logging:
      level: DEBUG
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger('socks5-client-config')


# ============================================================================
# 配置数据类
# ============================================================================

@dataclass
class Config:
    """
    客户端的一些基本设置

    交给会话时会被复制一份，之后调用方对原对象的修改不会影响会话。

    Attributes:
        connect_timeout: 连接代理的超时时间（秒），None 表示不限制。
            只约束初始拨号，不约束之后的协商/请求/应答
        skip_auth: 跳过认证方法协商，直接发送命令请求。
            节省一次往返，需要代理端同样不要求认证
    """
    connect_timeout: Optional[float] = None
    skip_auth: bool = False

    def set_connect_timeout(self, seconds: float) -> 'Config':
        """设置连接超时（秒）"""
        if seconds is None or seconds <= 0:
            raise ValueError(f"连接超时必须为正数: {seconds!r}")
        self.connect_timeout = float(seconds)
        return self

    def set_skip_auth(self, value: bool) -> 'Config':
        self.skip_auth = bool(value)
        return self

    def copy(self) -> 'Config':
        return replace(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Config':
        """
        从配置字典（YAML 的 client 段）构造 Config

        Args:
            data: 配置字典，可以为 None

        Returns:
            Config: 配置对象
        """
        data = data or {}
        config = cls()

        timeout = data.get('connect_timeout')
        if timeout is not None:
            config.set_connect_timeout(float(timeout))

        config.set_skip_auth(_parse_bool(data.get('skip_auth', False)))
        return config


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


# ============================================================================
# 配置文件管理函数
# ============================================================================

def load_config(config_file: str) -> Dict[str, Any]:
    """
    加载配置文件

    从 YAML 格式的配置文件中加载配置数据

    Args:
        config_file: 配置文件路径

    Returns:
        Dict[str, Any]: 配置数据字典，如果文件不存在或格式错误则返回空字典
    """
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        logger.warning(f"配置文件格式错误: {e}")
        return {}


def load_client_config(config_file: str) -> Config:
    """
    从配置文件的 client 段加载 Config

    环境变量 SOCKS5_CONNECT_TIMEOUT / SOCKS5_SKIP_AUTH 优先于配置文件。

    Args:
        config_file: 配置文件路径

    Returns:
        Config: 配置对象
    """
    client_conf = dict(load_config(config_file).get('client') or {})

    timeout = os.getenv('SOCKS5_CONNECT_TIMEOUT')
    if timeout:
        client_conf['connect_timeout'] = timeout

    skip_auth = os.getenv('SOCKS5_SKIP_AUTH')
    if skip_auth:
        client_conf['skip_auth'] = skip_auth

    return Config.from_dict(client_conf)
