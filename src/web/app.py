"""
Quart application exposing the content quality pipeline as a JSON API
for the admin panel.
"""
import logging
from typing import Optional

import aiosqlite
from pydantic import ValidationError
from quart import Quart, request, jsonify
from quart_cors import cors

from core.errors import ContentNotFoundError, ImprovementFailedError
from core.schemas import AnalysisContext, QualityAnalysis
from processing.orchestrator import ContentQualityOrchestrator, build_orchestrator
from services.config import Config, load_config, log_configuration_warnings
from services.database import CONTENT_KINDS, Database
from workflows.quality_audit import QualityAuditWorkflow

logger = logging.getLogger(__name__)

app = Quart(__name__)
app = cors(app)

# Initialize services
config: Optional[Config] = None
db: Optional[Database] = None
orchestrator: Optional[ContentQualityOrchestrator] = None


def init_services(
    app_config: Optional[Config] = None,
    database: Optional[Database] = None,
    quality_orchestrator: Optional[ContentQualityOrchestrator] = None,
) -> None:
    """Build shared services once. Anything passed in is used as-is."""
    global config, db, orchestrator
    config = app_config or load_config()
    db = database or Database(config.DATABASE_PATH)
    orchestrator = quality_orchestrator or build_orchestrator(config)


def get_db() -> Database:
    if db is None:
        init_services()
    return db


def get_orchestrator() -> ContentQualityOrchestrator:
    if orchestrator is None:
        init_services()
    return orchestrator


# ==================== Startup ====================

@app.before_serving
async def startup():
    """Initialize services and database tables on startup."""
    if config is None:
        init_services()
    log_configuration_warnings(config)
    await get_db().init_tables()
    logger.info("Content quality API started, database initialized")


# ==================== Helpers ====================

def _bad_request(message: str):
    return jsonify({'status': 'error', 'message': message}), 400


def _item_context(item) -> AnalysisContext:
    return AnalysisContext(category=item.category, keywords=list(item.keywords))


# ==================== API Routes ====================

@app.route('/health')
async def health():
    orch = get_orchestrator()
    return jsonify({
        'status': 'ok',
        'providers': [tier.name for tier in orch.tiers],
        'fallbackMode': orch.fallback_mode,
    })


@app.route('/api/content-quality', methods=['POST'])
async def api_content_quality():
    """Analyze or improve ad-hoc content: {content, title, action}."""
    data = await request.get_json(silent=True)
    if not isinstance(data, dict):
        return _bad_request('JSON body required')

    action = data.get('action', 'analyze')
    content = data.get('content') or ''
    title = data.get('title') or ''
    if not isinstance(content, str) or not isinstance(title, str):
        return _bad_request('content and title must be strings')

    try:
        context = AnalysisContext.model_validate(data.get('context') or {})
    except ValidationError as e:
        return _bad_request(f'Invalid context: {e}')

    orch = get_orchestrator()

    if action == 'analyze':
        analysis = await orch.analyze(content, title, context)
        return jsonify({'analysis': analysis.model_dump(by_alias=True)})

    if action == 'improve':
        if not content.strip():
            return _bad_request('content is required for improvement')
        try:
            if data.get('analysis'):
                analysis = QualityAnalysis.model_validate(data['analysis'])
            else:
                analysis = await orch.analyze(content, title, context)
        except ValidationError as e:
            return _bad_request(f'Invalid analysis: {e}')

        try:
            improvement = await orch.improve(content, title, analysis)
        except ImprovementFailedError as e:
            logger.error(f"Improvement failed: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 502
        return jsonify({'improved': improvement.model_dump(by_alias=True)})

    return _bad_request(f'Unknown action: {action}')


@app.route('/api/content/<content_id>/analyze', methods=['POST'])
async def api_analyze_content(content_id: str):
    """Analyze a stored content row and persist its score."""
    database = get_db()
    item = await database.get_content(content_id)
    if item is None:
        raise ContentNotFoundError(content_id)

    context = _item_context(item)
    analysis = await get_orchestrator().analyze(item.body, item.title, context, item.metadata)

    await database.update_quality_score(item.id, analysis)
    logger.info(f"Stored quality score {analysis.score:.0f} for {item.id}")

    return jsonify({'id': item.id, 'analysis': analysis.model_dump(by_alias=True)})


@app.route('/api/content/<content_id>/improve', methods=['POST'])
async def api_improve_content(content_id: str):
    """
    Analyze and improve a stored row. The result is tracked as an
    improvement record but not written to the content.
    """
    database = get_db()
    item = await database.get_content(content_id)
    if item is None:
        raise ContentNotFoundError(content_id)
    if not item.body.strip():
        return _bad_request('content body is empty')

    improvement_id = await database.create_improvement(item.id, item.body)
    orch = get_orchestrator()

    context = _item_context(item)
    analysis = await orch.analyze(item.body, item.title, context, item.metadata)
    try:
        improvement = await orch.improve(item.body, item.title, analysis)
    except ImprovementFailedError as e:
        await database.fail_improvement(improvement_id, str(e), analysis)
        logger.error(f"Improvement failed for {item.id}: {e}")
        return jsonify({
            'status': 'error',
            'message': str(e),
            'improvementId': improvement_id,
            'analysis': analysis.model_dump(by_alias=True),
        }), 502

    await database.complete_improvement(improvement_id, analysis, improvement)

    return jsonify({
        'success': True,
        'improvementId': improvement_id,
        'original': {'content': item.body, 'score': analysis.score},
        'improved': {'content': improvement.improved, 'score': improvement.score.after},
        'analysis': analysis.model_dump(by_alias=True),
        'improvement': {
            'scoreIncrease': improvement.score.improvement,
            'changes': [c.model_dump(by_alias=True) for c in improvement.changes],
        },
    })


@app.route('/api/content/<content_id>/improve', methods=['PUT'])
async def api_apply_improvement(content_id: str):
    """Explicit editor save of an improved body."""
    data = await request.get_json(silent=True) or {}
    improved = data.get('improvedContent')
    if not improved or not isinstance(improved, str):
        return _bad_request('improvedContent is required')

    score = data.get('qualityScore')
    item = await get_db().apply_improvement(content_id, improved, score)
    return jsonify({
        'success': True,
        'article': {'id': item.id, 'title': item.title, 'qualityScore': item.quality_score},
    })


@app.route('/api/content-quality/audit', methods=['POST'])
async def api_run_audit():
    """Score stored content in batches and persist the snapshots."""
    data = await request.get_json(silent=True) or {}
    kind = data.get('kind')
    if kind is not None and kind not in CONTENT_KINDS:
        return _bad_request(f'kind must be one of {", ".join(CONTENT_KINDS)}')

    limit = data.get('limit')
    if isinstance(limit, str) and limit.strip().isdecimal():
        limit = int(limit)
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
        return _bad_request('limit must be a positive integer')

    workflow = QualityAuditWorkflow.from_config(config or load_config(), get_orchestrator(), get_db())
    report = await workflow.run(
        kind=kind,
        limit=limit,
        only_unscored=bool(data.get('onlyUnscored', False)),
        force=bool(data.get('force', False)),
    )
    return jsonify(report.to_dict())


@app.route('/api/content-quality/stats')
async def api_quality_stats():
    stats = await get_db().quality_stats()
    return jsonify(stats)


# ==================== Error Handlers ====================

@app.errorhandler(ContentNotFoundError)
async def content_not_found(error):
    return jsonify({'status': 'error', 'message': str(error)}), 404


@app.errorhandler(aiosqlite.Error)
async def database_error(error):
    logger.error(f"Database error: {error}")
    return jsonify({'status': 'error', 'message': 'Database error'}), 500
