#!/usr/bin/env python3
"""
日志模块测试

测试内容:
1. 上下文过滤器
2. 格式化器
3. 从 YAML 文件和环境变量加载日志配置
"""

import logging

from socks5_client.logger import ContextFilter, LogConfig, LogFormatter, LoggerManager

LOG_ENV = (
    'LOG_LEVEL', 'LOG_DIR', 'LOG_FILE', 'LOG_MAX_BYTES', 'LOG_BACKUP_COUNT',
    'LOG_ROTATION_TYPE', 'LOG_FORMAT', 'LOG_ENABLE_CONSOLE', 'LOG_ENABLE_FILE',
    'LOG_ENABLE_JOURNAL',
)


def make_record(msg='hello') -> logging.LogRecord:
    return logging.LogRecord('socks5-client', logging.INFO, __file__, 1, msg, None, None)


def test_context_filter_adds_fields():
    context_filter = ContextFilter(['proxy', 'target', 'session_id'])
    context_filter.add_context(proxy='127.0.0.1:1080', target='perdu.com:80')

    record = make_record()
    assert context_filter.filter(record) is True
    assert record.context == 'proxy=127.0.0.1:1080 | target=perdu.com:80 | session_id=-'

    context_filter.clear_context()
    context_filter.filter(record)
    assert record.context == 'proxy=- | target=- | session_id=-'


def test_formatter_without_context():
    formatter = LogFormatter(fmt='[%(context)s] %(levelname)s %(message)s')
    assert formatter.format(make_record()) == '[-] INFO hello'


def test_formatter_color_does_not_leak():
    formatter = LogFormatter(fmt='%(levelname)s', use_color=True)
    record = make_record()
    assert formatter.format(record) == '\033[32mINFO\033[0m'
    assert record.levelname == 'INFO'


def test_load_config_from_file(tmp_path, monkeypatch):
    for name in LOG_ENV:
        monkeypatch.delenv(name, raising=False)

    path = tmp_path / 'config.yaml'
    path.write_text(
        "logging:\n"
        "  level: DEBUG\n"
        "  enable_file: true\n"
        "  log_dir: /tmp/socks5-logs\n",
        encoding='utf-8'
    )

    config = LoggerManager().load_config_from_file(str(path))
    assert config.level == 'DEBUG'
    assert config.enable_file is True
    assert config.log_dir == '/tmp/socks5-logs'
    assert config.context_fields == ['proxy', 'target', 'session_id']

    monkeypatch.setenv('LOG_LEVEL', 'WARNING')
    assert LoggerManager().load_config_from_file(str(path)).level == 'WARNING'


def test_missing_config_file_uses_defaults(tmp_path, monkeypatch):
    for name in LOG_ENV:
        monkeypatch.delenv(name, raising=False)

    config = LoggerManager().load_config_from_file(str(tmp_path / 'missing.yaml'))
    assert config == LogConfig()


def test_logger_manager_is_singleton():
    assert LoggerManager() is LoggerManager()
