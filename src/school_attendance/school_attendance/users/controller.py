from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.web import json_errors, login_required, ok, request_data
from ..container import Container


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=7)

    @app.route("/login", methods=["POST"], endpoint="login")
    @json_errors
    def login():
        data = request_data()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        return ok(s_user)

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        sid = session.get("placement_session_id")
        if sid:
            container.placement_sessions.discard(sid)
        session.clear()
        return ok()

    @app.route("/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return ok({"user_id": session["user_id"], "full_name": session.get("name"), "role": session.get("role")})
