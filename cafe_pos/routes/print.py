"""Print routes: manual fallback previews and delivery history."""
from flask import Blueprint, abort, render_template, request

from cafe_pos import get_coordinator
from cafe_pos.models import DeliveryLog
from cafe_pos.printer.fallback import PreviewFallbackPresenter
from cafe_pos.printer.transports import TransportKind

print_bp = Blueprint("print", __name__)


def _preview_store() -> PreviewFallbackPresenter:
    transport = get_coordinator().transport(TransportKind.MANUAL_FALLBACK)
    presenter = getattr(transport, "presenter", None)
    if not isinstance(presenter, PreviewFallbackPresenter):
        abort(404)
    return presenter


@print_bp.route("/fallback")
def fallback_list():
    """Tickets waiting to be printed by hand."""
    tickets = _preview_store().recent()
    return render_template("print/fallback_list.html", tickets=tickets)


@print_bp.route("/fallback/<ticket_id>")
def fallback_ticket(ticket_id):
    """Plain-text ticket with a print button."""
    ticket = _preview_store().get(ticket_id)
    if ticket is None:
        abort(404)
    return render_template("print/fallback.html", ticket=ticket)


@print_bp.route("/history")
def history():
    """View delivery history."""
    page = request.args.get("page", 1, type=int)
    per_page = 20

    query = DeliveryLog.query.order_by(DeliveryLog.printed_at.desc(), DeliveryLog.id.desc())

    # Filter by status if provided
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)

    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    return render_template("history.html",
                           history=pagination.items,
                           pagination=pagination,
                           current_status=status)


@print_bp.route("/history/<int:history_id>")
def history_detail(history_id):
    """View details of a specific delivery."""
    record = DeliveryLog.query.get_or_404(history_id)
    return render_template("print/history_detail.html", record=record)
