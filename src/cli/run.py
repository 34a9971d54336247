import argparse
import asyncio
import json
import logging
import time
from typing import List, Optional

from core.schemas import AnalysisContext
from processing.orchestrator import build_orchestrator
from services.config import load_config, log_configuration_warnings
from services.database import CONTENT_KINDS, Database
from services.logging import setup_logging
from workflows.quality_audit import QualityAuditWorkflow

logger = logging.getLogger(__name__)


async def run_audit(args: argparse.Namespace) -> int:
    start_time = time.perf_counter()
    config = load_config(args.config)
    log_configuration_warnings(config)

    # ----------------------------
    # Initialize shared services
    # ----------------------------
    orchestrator = build_orchestrator(config)
    db = Database(config.DATABASE_PATH)
    await db.init_tables()

    workflow = QualityAuditWorkflow.from_config(config, orchestrator, db)

    logger.info("Starting content quality audit")
    report = await workflow.run(
        kind=args.kind,
        limit=args.limit,
        only_unscored=args.only_unscored,
        force=args.force,
    )

    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))

    end_time = time.perf_counter()
    logger.info(f"Total time: {end_time - start_time}")
    return 1 if report.errors else 0


async def run_analyze(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    log_configuration_warnings(config)
    orchestrator = build_orchestrator(config)

    if args.id:
        db = Database(config.DATABASE_PATH)
        item = await db.get_content(args.id)
        if item is None:
            logger.error(f"Content not found: {args.id}")
            return 1
        context = AnalysisContext(category=item.category, keywords=list(item.keywords))
        analysis = await orchestrator.analyze(item.body, item.title, context, item.metadata)
        if args.save:
            await db.update_quality_score(item.id, analysis)
            logger.info(f"Stored quality score {analysis.score:.0f} for {item.id}")
    else:
        with open(args.file, 'r', encoding='utf-8') as f:
            content = f.read()
        analysis = await orchestrator.analyze(content, args.title or "")

    print(analysis.model_dump_json(by_alias=True, indent=2))
    return 0 if analysis.passed else 2


async def run_init_db(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    await Database(config.DATABASE_PATH).init_tables()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Content quality tools')
    parser.add_argument('--config', default=None,
                        help='Path to config.yml (default: resources/config.yml)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    commands = parser.add_subparsers(dest='command', required=True)

    audit = commands.add_parser('audit', help='Score stored content and persist the results')
    audit.add_argument('--kind', choices=CONTENT_KINDS, default=None)
    audit.add_argument('--limit', type=int, default=None)
    audit.add_argument('--only-unscored', action='store_true',
                       help='Skip rows that already have a score')
    audit.add_argument('--force', action='store_true',
                       help='Write scores even when they did not change')
    audit.set_defaults(handler=run_audit)

    analyze = commands.add_parser('analyze', help='Analyze a single item')
    source = analyze.add_mutually_exclusive_group(required=True)
    source.add_argument('--id', help='Stored content id')
    source.add_argument('--file', help='HTML or text file to analyze')
    analyze.add_argument('--title', default=None)
    analyze.add_argument('--save', action='store_true',
                         help='Persist the score of a stored item')
    analyze.set_defaults(handler=run_analyze)

    init_db = commands.add_parser('init-db', help='Create database tables')
    init_db.set_defaults(handler=run_init_db)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    raise SystemExit(main())
