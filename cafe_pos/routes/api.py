"""REST API endpoints for the till front end."""
import base64
import logging

from flask import Blueprint, current_app, jsonify, request

from cafe_pos import db, get_coordinator
from cafe_pos.models import DeliveryLog
from cafe_pos.printer import (
    PayloadTooLarge,
    PresentationFailure,
    TemplateRenderer,
    TransportKind,
    job_from_list,
    sanitize,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _renderer() -> TemplateRenderer:
    return TemplateRenderer(
        width=current_app.config["DEFAULT_PRINTER_WIDTH"],
        code_page=current_app.config["PRINTER_CODE_PAGE"],
    )


def _job_from(data: dict, key: str = "job", label: str = "ticket"):
    """Build a print job from a directive list or a template."""
    if key in data:
        if not isinstance(data[key], list):
            raise ValueError(f"'{key}' must be a list of directives")
        return job_from_list(data[key], label=label)
    if key == "job" and data.get("template"):
        return _renderer().compile(data["template"], data.get("variables", {}), label=label)
    raise ValueError(f"'{key}' or 'template' is required")


def _log(outcome, buffer: bytes) -> DeliveryLog:
    record = DeliveryLog.from_outcome(outcome, preview=sanitize(buffer), size=len(buffer))
    db.session.add(record)
    db.session.commit()
    return record


def _error(e, status: int):
    return jsonify({"success": False, "error": e.operator_message, "detail": e.message}), status


# Rendering

@api_bp.route("/render", methods=["POST"])
def render_job():
    """Encode a job without printing it.

    Request body: {"job": [{"type": "text", "text": "..."}, ...]}
    or {"template": "[center]...", "variables": {...}}

    Template responses also list the variable names the template uses.
    """
    data = request.get_json(silent=True) or {}
    try:
        job = _job_from(data, label=data.get("label", "ticket"))
        buffer = get_coordinator().render(job)
    except PayloadTooLarge as e:
        return _error(e, 400)
    except (KeyError, ValueError) as e:
        return jsonify({"success": False, "error": str(e)}), 400

    result = {
        "success": True,
        "size": len(buffer),
        "data": base64.b64encode(buffer).decode("ascii"),
        "preview": sanitize(buffer),
    }
    # Let the till know which values a template expects
    if "job" not in data:
        result["variables"] = _renderer().extract_variables(data["template"])
    return jsonify(result)


# Printing

@api_bp.route("/print", methods=["POST"])
def print_job():
    """Print a ticket, or a customer copy followed by a staff copy.

    Request body:
    {
        "job": [...],                       // or "template" + "variables"
        "label": "ticket"
    }
    or
    {
        "customer": [...],
        "staff": [...]
    }
    """
    data = request.get_json(silent=True) or {}
    coordinator = get_coordinator()

    if "customer" in data or "staff" in data:
        return _print_pair(data)

    try:
        job = _job_from(data, label=data.get("label", "ticket"))
        buffer = coordinator.render(job)
    except PayloadTooLarge as e:
        return _error(e, 400)
    except (KeyError, ValueError) as e:
        return jsonify({"success": False, "error": str(e)}), 400

    try:
        outcome = coordinator.deliver(buffer, label=job.label)
    except PresentationFailure as e:
        record = _log(e.outcome, buffer)
        logger.error("Ticket '%s' could not be presented: %s", job.label, e)
        return jsonify({
            "success": False,
            "error": e.operator_message,
            "detail": e.message,
            "outcome": e.outcome.to_dict(),
            "history_id": record.id,
        }), 503

    record = _log(outcome, buffer)
    return jsonify({"success": True, "outcome": outcome.to_dict(), "history_id": record.id})


def _print_pair(data: dict):
    coordinator = get_coordinator()
    try:
        customer = coordinator.render(_job_from(data, "customer", label="customer"))
        staff = coordinator.render(_job_from(data, "staff", label="staff"))
    except PayloadTooLarge as e:
        return _error(e, 400)
    except (KeyError, ValueError) as e:
        return jsonify({"success": False, "error": str(e)}), 400

    first, second = coordinator.deliver_pair(customer, staff)
    outcomes = [first.to_dict(), second.to_dict()]
    history_ids = [_log(first, customer).id, _log(second, staff).id]

    failed = [o for o in (first, second) if not o.succeeded and not o.cancelled]
    if failed:
        try:
            failed[0].raise_for_failure()
        except PresentationFailure as e:
            return jsonify({
                "success": False,
                "error": e.operator_message,
                "detail": e.message,
                "outcomes": outcomes,
                "history_ids": history_ids,
            }), 503

    return jsonify({"success": True, "outcomes": outcomes, "history_ids": history_ids})


# Device grant

def _direct_transport():
    return get_coordinator().transport(TransportKind.DIRECT)


@api_bp.route("/device", methods=["GET"])
def device_status():
    """Show the granted device and the bound channel."""
    transport = _direct_transport()
    if transport is None:
        return jsonify({"error": "Direct printing is disabled"}), 404
    channel = transport.channel
    return jsonify({
        "granted": transport.selector.granted,
        "bound": repr(channel) if channel is not None and channel.is_open else None,
    })


@api_bp.route("/device", methods=["POST"])
def grant_device():
    """Grant the printer device to use for direct printing.

    Request body: {"type": "serial", "port": "/dev/ttyUSB0"}
    """
    transport = _direct_transport()
    if transport is None:
        return jsonify({"error": "Direct printing is disabled"}), 404
    spec = request.get_json(silent=True) or {}
    try:
        transport.selector.grant(spec)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    # A new grant replaces whatever channel was bound
    transport.invalidate()
    return jsonify({"granted": transport.selector.granted}), 201


@api_bp.route("/device", methods=["DELETE"])
def revoke_device():
    """Revoke the device grant and release the channel."""
    transport = _direct_transport()
    if transport is None:
        return jsonify({"error": "Direct printing is disabled"}), 404
    transport.selector.revoke()
    transport.invalidate()
    return jsonify({"success": True})


# History

@api_bp.route("/history", methods=["GET"])
def list_history():
    """List recent deliveries."""
    limit = request.args.get("limit", 50, type=int)
    query = DeliveryLog.query.order_by(DeliveryLog.printed_at.desc(), DeliveryLog.id.desc())

    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)

    return jsonify({
        "history": [r.to_dict() for r in query.limit(limit).all()]
    })


@api_bp.route("/history/<int:history_id>", methods=["GET"])
def get_history(history_id):
    """Get a single delivery record."""
    record = DeliveryLog.query.get_or_404(history_id)
    return jsonify(record.to_dict())
