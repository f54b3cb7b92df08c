"""
JOOBIN Renovation Hub Service
Dashboard backend for the renovation project: Notion aggregation, AI summary,
deliverable deduplication and notifications

This service:
1. Aggregates budget, payments, deliverables and milestones from Notion (GET /proxy)
2. Applies password-gated dashboard updates (mark payment paid, approve gate)
3. Summarizes KPIs with Gemini
4. Deduplicates designer deliverable submissions (webhooks)
5. Compares vendor bids and quotations
6. Emails deliverable update notifications
"""

import os
import hmac
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import Flask, request, jsonify

from renovation_hub import config
from renovation_hub import actions
from renovation_hub import bids
from renovation_hub import dedupe
from renovation_hub import notify
from renovation_hub import summary
from renovation_hub.dashboard import build_dashboard
from renovation_hub.finance import vendor_lookup
from renovation_hub.notion_api import query_all, retrieve_record

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
    'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
}


# =============================================================================
# REQUEST HELPERS
# =============================================================================

def error_response(message, status=500):
    return jsonify({
        "error": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), status


def secrets_match(supplied, expected):
    # An unset secret never matches
    if not expected or not supplied:
        return False
    return hmac.compare_digest(str(supplied).encode(), str(expected).encode())


def require_webhook_secret(view):
    """Reject the request unless it carries Authorization: Bearer <WEBHOOK_SECRET>."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        auth = request.headers.get('Authorization', '')
        token = auth[len('Bearer '):] if auth.startswith('Bearer ') else ''
        if not secrets_match(token, config.WEBHOOK_SECRET):
            logger.warning(f"Unauthorized webhook call to {request.path}")
            return jsonify({"error": "Unauthorized"}), 401
        return view(*args, **kwargs)
    return wrapped


def json_body():
    payload = request.get_json(silent=True)
    # Some automation tools wrap the payload in an array
    if isinstance(payload, list) and payload:
        payload = payload[0]
    return payload if isinstance(payload, dict) else {}


@app.before_request
def cors_preflight():
    if request.method == 'OPTIONS':
        return '', 204


@app.after_request
def add_cors_headers(response):
    response.headers.update(CORS_HEADERS)
    response.headers['Cache-Control'] = 'no-store'
    return response


@app.errorhandler(404)
@app.errorhandler(405)
def not_found(e):
    return jsonify({"error": "Not found"}), 404


# =============================================================================
# DASHBOARD
# =============================================================================

@app.route('/proxy', methods=['GET'])
@app.route('/.netlify/functions/proxy', methods=['GET'])
def dashboard():
    """Full dashboard: kpis, gates, deliverables, payments, vendors, alerts."""
    try:
        data = build_dashboard()
        logger.info(
            f"Dashboard built: {data['kpis']['deliverablesApproved']}/{data['kpis']['deliverablesTotal']} "
            f"deliverables approved, {len(data['gates'])} gates"
        )
        return jsonify(data)
    except Exception as e:
        logger.error(f"Dashboard failed: {e}", exc_info=True)
        return error_response(str(e))


@app.route('/proxy', methods=['POST'])
@app.route('/.netlify/functions/proxy', methods=['POST'])
def dashboard_update():
    """
    Dashboard mutations and AI summary.

    - {"action": "mark_payment_paid", "pageId": "...", "password": "..."}
    - {"action": "mark_gate_approved", "gateName": "...", "password": "..."}
    - {"kpis": {...}} (no action) - Gemini summary of the supplied KPIs
    """
    try:
        payload = json_body()
        action = payload.get('action')

        if not action:
            text = summary.summarize(payload.get('kpis') or {})
            return jsonify({"summary": text})

        if not secrets_match(payload.get('password'), config.UPDATE_PASSWORD):
            logger.warning(f"Rejected '{action}' with bad password")
            return jsonify({"error": "Unauthorized: Incorrect password."}), 401

        if action == 'mark_payment_paid':
            return jsonify(actions.mark_payment_paid(payload.get('pageId')))

        if action == 'mark_gate_approved':
            cfg = config.load_dashboard_config()
            return jsonify(actions.mark_gate_approved(payload.get('gateName'), cfg))

        return jsonify({
            "error": f"Unknown action: {action}",
            "available_actions": ["mark_payment_paid", "mark_gate_approved"],
        }), 400

    except actions.InvalidRequest as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Dashboard update failed: {e}", exc_info=True)
        return error_response(str(e))


@app.route('/create-task', methods=['POST'])
@app.route('/.netlify/functions/create-task', methods=['POST'])
def create_task():
    """Create a deliverable record: {"title": ..., "gate": ..., "dueDate": ..., "password": ...}"""
    try:
        payload = json_body()
        if not secrets_match(payload.get('password'), config.UPDATE_PASSWORD):
            return jsonify({"error": "Unauthorized: Incorrect password."}), 401
        return jsonify(actions.create_task(payload))
    except actions.InvalidRequest as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Create task failed: {e}", exc_info=True)
        return error_response(str(e))


# =============================================================================
# BID COMPARISON
# =============================================================================

@app.route('/bids', methods=['GET'])
@app.route('/proxy/bids', methods=['GET'])
def bid_comparison():
    """Trade-room bid comparison from the Sourcing Master List."""
    try:
        records = query_all(config.SOURCING_MASTER_LIST_DB_ID)
        return jsonify({
            "success": True,
            "data": bids.compare_bids(records),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
    except Exception as e:
        logger.error(f"Bid comparison failed: {e}", exc_info=True)
        return error_response(str(e))


@app.route('/quotations', methods=['GET'])
@app.route('/proxy/quotations', methods=['GET'])
def quotation_comparison():
    """Quotations Hub grouped by trade, vendor names resolved from the registry."""
    try:
        records = query_all(config.QUOTATIONS_HUB_ID)
        vendors = vendor_lookup(query_all(config.VENDOR_REGISTRY_DB_ID)) if records else {}
        return jsonify({
            "success": True,
            "data": bids.compare_quotations(records, vendors),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
    except Exception as e:
        logger.error(f"Quotation comparison failed: {e}", exc_info=True)
        return error_response(str(e))


# =============================================================================
# DELIVERABLE WEBHOOKS
# =============================================================================

@app.route('/deliverable-webhook', methods=['POST'])
@app.route('/webhooks/deliverable-dedupe', methods=['POST'])
@require_webhook_secret
def deliverable_webhook():
    """
    Notion automation callback for a new form submission: {"pageId": "..."}
    Merges the submission into an existing deliverable or promotes it.
    """
    try:
        page_id = json_body().get('pageId')
        if not page_id:
            return jsonify({"error": "Missing 'pageId'"}), 400

        logger.info(f"Dedupe webhook for {page_id}")
        result = dedupe.handle_submission(page_id)
        if not result.get('success'):
            return error_response(result.get('error', 'Dedupe failed'))
        return jsonify(result)

    except Exception as e:
        logger.error(f"Deliverable webhook failed: {e}", exc_info=True)
        return error_response(str(e))


@app.route('/scheduled-dedupe', methods=['POST'])
@require_webhook_secret
def scheduled_dedupe():
    """Scheduled sweep over every page still titled "New submission"."""
    try:
        return jsonify(dedupe.process_new_submissions())
    except Exception as e:
        logger.error(f"Scheduled dedupe failed: {e}", exc_info=True)
        return error_response(str(e))


@app.route('/deduplicate-deliverables', methods=['POST'])
@require_webhook_secret
def deduplicate_deliverables():
    """Batch merge of deliverables sharing tags and title; extras are archived."""
    try:
        return jsonify(dedupe.deduplicate_all())
    except Exception as e:
        logger.error(f"Batch dedupe failed: {e}", exc_info=True)
        return error_response(str(e))


@app.route('/deliverable-notify', methods=['POST'])
@require_webhook_secret
def deliverable_notify():
    """Email the owners when a deliverable changes: {"pageId": "..."}"""
    try:
        page_id = json_body().get('pageId')
        if not page_id:
            return jsonify({"error": "Missing 'pageId'"}), 400

        record = retrieve_record(page_id)
        subject, body = notify.build_deliverable_email(record)
        recipients = notify.send_email(subject, body)

        return jsonify({
            "success": True,
            "message": "Email notifications sent",
            "deliverable": subject.split(': ', 1)[-1],
            "recipients": recipients,
        })
    except Exception as e:
        logger.error(f"Deliverable notify failed: {e}", exc_info=True)
        return error_response(str(e))


# =============================================================================
# SERVICE INFO
# =============================================================================

@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "service": "renovation-hub"})


@app.route('/', methods=['GET'])
def root():
    """Root endpoint with service info."""
    return jsonify({
        "service": "JOOBIN Renovation Hub",
        "version": "1.0.0",
        "endpoints": {
            "/proxy": "GET - Dashboard data; POST - updates (password) or AI summary",
            "/create-task": "POST - Create a deliverable record (password)",
            "/bids": "GET - Trade/room bid comparison",
            "/quotations": "GET - Quotation comparison by trade",
            "/deliverable-webhook": "POST - Dedupe a form submission (bearer)",
            "/scheduled-dedupe": "POST - Dedupe all pending submissions (bearer)",
            "/deduplicate-deliverables": "POST - Batch merge duplicate deliverables (bearer)",
            "/deliverable-notify": "POST - Email deliverable update (bearer)",
            "/health": "GET - Health check",
        }
    })


if __name__ == '__main__':
    # Verify required environment variables
    required_vars = ['NOTION_API_KEY']
    missing = [v for v in required_vars if not os.environ.get(v)]
    if missing:
        logger.error(f"Missing required environment variables: {missing}")
        exit(1)

    port = int(os.environ.get('PORT', 8080))
    app.run(host='0.0.0.0', port=port, debug=False)
