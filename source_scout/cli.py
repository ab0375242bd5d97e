# === FILE: source_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа SourceScout для командной строки.

Команды:
  fetch URL     Открыть страницу в браузере и вывести полный захват сети (JSON)
  analyze URL   Определить основной источник данных страницы (JSON)
  serve         Запустить HTTP-сервис (/health, /fetch, /analyze)
  config        Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Опции fetch/analyze:
  --wait-until EVENT          load | domcontentloaded | networkidle (только fetch)
  --timeout MS                Общий таймаут визита
  --network-idle-timeout MS   Таймаут ожидания networkidle
  --selector CSS              Дождаться селектора (не обязательно)
  --wait-ms MS                Дополнительная пауза после загрузки
  --pretty                    Отступ 2 в JSON-выводе

Пример:
  source-scout analyze https://example.com --pretty
"""
import asyncio
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from source_scout import __version__
from source_scout.config import load_config, NavigationRequest
from source_scout.engine import run_analyze, run_fetch
from source_scout.logger import DEFAULT_FORMAT, init_logging
from source_scout.server import serve as serve_app

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def navigation_options(with_wait_until: bool):
    """Общие опции визита для fetch и analyze."""
    def decorator(func):
        options = [
            click.argument('url'),
            click.option('--timeout', 'timeout', type=int, default=60_000, show_default=True,
                         help='Общий таймаут визита (мс)'),
            click.option('--network-idle-timeout', 'network_idle_timeout', type=int, default=10_000,
                         show_default=True, help='Таймаут ожидания networkidle (мс)'),
            click.option('--selector', '-s', 'selector', default=None,
                         help='CSS-селектор, которого стоит дождаться'),
            click.option('--wait-ms', 'wait_ms', type=int, default=0, show_default=True,
                         help='Дополнительная пауза после загрузки (мс)'),
            click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)'),
        ]
        if with_wait_until:
            options.append(click.option(
                '--wait-until', 'wait_until',
                default='networkidle', show_default=True,
                type=click.Choice(['load', 'domcontentloaded', 'networkidle']),
                help='Событие завершения загрузки',
            ))
        for option in reversed(options):
            func = option(func)
        return func
    return decorator


def build_request(url, timeout, network_idle_timeout, selector, wait_ms, wait_until='networkidle'):
    try:
        return NavigationRequest(
            url=url,
            wait_until=wait_until,
            timeout=timeout,
            network_idle_timeout=network_idle_timeout,
            wait_for_selector=selector,
            additional_wait_ms=wait_ms,
        )
    except ValidationError as e:
        print_error(f'Некорректные параметры: {e}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SourceScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SourceScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('fetch', context_settings=CONTEXT_SETTINGS)
@navigation_options(with_wait_until=True)
@click.pass_context
def fetch(ctx, url, timeout, network_idle_timeout, selector, wait_ms, pretty, wait_until):
    """Открыть страницу и вывести захват сетевой активности."""
    cfg = ctx.obj['config']
    request = build_request(url, timeout, network_idle_timeout, selector, wait_ms, wait_until)
    try:
        capture = asyncio.run(run_fetch(cfg, request))
    except asyncio.CancelledError:
        print_error('Прервано')
    except Exception as e:
        print_error(f'Ошибка при загрузке страницы: {e}')
    click.echo(capture.json(pretty=pretty))


@cli.command('analyze', context_settings=CONTEXT_SETTINGS)
@navigation_options(with_wait_until=False)
@click.pass_context
def analyze(ctx, url, timeout, network_idle_timeout, selector, wait_ms, pretty):
    """Определить основной источник данных страницы."""
    cfg = ctx.obj['config']
    request = build_request(url, timeout, network_idle_timeout, selector, wait_ms)
    try:
        report = asyncio.run(run_analyze(cfg, request))
    except asyncio.CancelledError:
        print_error('Прервано')
    except Exception as e:
        print_error(f'Ошибка при анализе страницы: {e}')
    click.echo(report.json(pretty=pretty))


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Адрес (override host из конфига)')
@click.option('--port', '-p', type=int, default=None, help='Порт (override port из конфига)')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP-сервис."""
    serve_app(ctx.obj['config'], host=host, port=port)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2, exclude={'api_key'}))


def main():
    cli()


if __name__ == "__main__":
    main()
