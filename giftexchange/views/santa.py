from __future__ import annotations

import logging
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask.views import MethodView
from flask_login import current_user

from ..errors import InvalidPayloadError
from ..policies import LoginRequiredMixin, AdminRequiredMixin, current_user_id
from ..services.draws import draw_all, draw_for
from ..services.participants import confirm_gifted, register_participant, update_reminder
from ..services.projection import get_admin_state, get_state

logger = logging.getLogger(__name__)

santa_bp = Blueprint("santa", __name__, url_prefix="/api/secret-santa")


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data():
            raise InvalidPayloadError("Expected a JSON object.")
        return {}
    if not isinstance(data, dict):
        raise InvalidPayloadError("Expected a JSON object.")
    return data


def _optional_text(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise InvalidPayloadError(f"'{key}' must be text.")
    return value


class StateView(MethodView):
    def get(self):
        return jsonify(get_state(current_user_id()))


class RegisterView(LoginRequiredMixin):
    def post(self):
        data = _payload()
        register_participant(
            current_user.id,
            _optional_text(data, "wishlist"),
            _optional_text(data, "reminder_note"),
        )
        return jsonify(get_state(current_user.id)), HTTPStatus.CREATED


class DrawView(LoginRequiredMixin):
    def post(self):
        draw_for(current_user.id)
        return jsonify(get_state(current_user.id))


class GiftView(LoginRequiredMixin):
    def post(self):
        confirm_gifted(current_user.id)
        return jsonify(get_state(current_user.id))


class ReminderView(LoginRequiredMixin):
    def post(self):
        data = _payload()
        update_reminder(current_user.id, _optional_text(data, "reminder_note"))
        return jsonify(get_state(current_user.id))


class AdminStateView(AdminRequiredMixin):
    def get(self):
        return jsonify(get_admin_state())


class AdminDrawAllView(AdminRequiredMixin):
    def post(self):
        matched = draw_all()
        logger.info("Organizer %s ran the bulk draw (%d matched)", current_user.name, len(matched))
        return jsonify(get_admin_state())


santa_bp.add_url_rule("/", view_func=StateView.as_view("state"), methods=["GET"])
santa_bp.add_url_rule("/register", view_func=RegisterView.as_view("register"), methods=["POST"])
santa_bp.add_url_rule("/draw", view_func=DrawView.as_view("draw"), methods=["POST"])
santa_bp.add_url_rule("/gift", view_func=GiftView.as_view("gift"), methods=["POST"])
santa_bp.add_url_rule("/reminder", view_func=ReminderView.as_view("reminder"), methods=["POST"])

santa_bp.add_url_rule("/admin", view_func=AdminStateView.as_view("admin_state"), methods=["GET"])
santa_bp.add_url_rule("/admin/draw-all", view_func=AdminDrawAllView.as_view("admin_draw_all"), methods=["POST"])
