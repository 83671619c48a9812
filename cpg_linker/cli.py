"""
CPG 추출기 커맨드 라인 인터페이스
"""
import argparse
import sys

from shared_config.logger import logger, setup_console_logging, setup_file_logging

from .config import ExtractorConfig
from .drivers import MemoryDriver
from .extractor import Extractor, EXPORT_FORMATS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Code Property Graph flow/call edge extractor')
    parser.add_argument('inputs', nargs='+', help='IR files (.yaml/.yml/.json) or directories')
    parser.add_argument('-o', '--output', required=True, help='Output file path')
    parser.add_argument('-f', '--format', choices=EXPORT_FORMATS, default='json', help='Output format')
    parser.add_argument('-c', '--config', help='YAML/JSON config file')
    parser.add_argument('-w', '--workers', type=int, help='Parallel projection workers')
    parser.add_argument('--fail-fast', action='store_true', help='Abort on the first fatal method error')
    parser.add_argument('--log-dir', help='Directory for rotating log files')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ExtractorConfig.from_yaml(args.config) if args.config else ExtractorConfig.from_env()
        if args.workers is not None:
            config.max_workers = max(1, args.workers)
        if args.fail_fast:
            config.fail_fast = True
        if args.log_dir:
            config.log_dir = args.log_dir

        setup_console_logging("DEBUG" if args.verbose else config.log_level)
        if config.log_dir:
            setup_file_logging(config.log_dir)

        extractor = Extractor(MemoryDriver(), config)
        extractor.load(*args.inputs)
        report = extractor.project()
        extractor.export(args.output, args.format)
    except Exception as e:
        logger.error(f"Error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(report.summary())
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
