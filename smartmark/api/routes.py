from __future__ import annotations

from flask import current_app, jsonify, request
from pydantic import ValidationError

from smartmark.api import api_bp
from smartmark.services.ai_search import (
    AISearchError,
    AISearchRequest,
    ModelNotConfiguredError,
    search_bookmarks,
)
from smartmark.services.titles import fetch_title


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "Smart Bookmark"})


@api_bp.route("/fetch-title", methods=["GET"])
def fetch_title_api():
    url = (request.args.get("url") or "").strip()
    if not url:
        return jsonify({"title": ""}), 400

    title = fetch_title(
        url,
        timeout=current_app.config["TITLE_FETCH_TIMEOUT"],
        user_agent=current_app.config["TITLE_FETCH_USER_AGENT"],
        max_bytes=current_app.config["TITLE_FETCH_MAX_BYTES"],
    )
    return jsonify({"title": title})


@api_bp.route("/ai-search", methods=["POST"])
def ai_search_api():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    try:
        search_request = AISearchRequest.model_validate(payload)
    except ValidationError:
        return jsonify({"error": "invalid request body"}), 400

    config = current_app.config
    try:
        matched_ids = search_bookmarks(
            search_request,
            api_key=config.get("GOOGLE_API_KEY"),
            model=config["AI_SEARCH_MODEL"],
            endpoint=config["AI_SEARCH_ENDPOINT"],
            temperature=config["AI_SEARCH_TEMPERATURE"],
            max_output_tokens=config["AI_SEARCH_MAX_OUTPUT_TOKENS"],
            timeout=config.get("AI_SEARCH_TIMEOUT"),
        )
    except ModelNotConfiguredError as exc:
        current_app.logger.error("AI search unavailable: %s", exc)
        return jsonify({"error": str(exc)}), 500
    except AISearchError as exc:
        current_app.logger.error("Gemini error: %s", exc)
        return jsonify({"error": "AI search failed"}), 500

    return jsonify({"matchedIds": matched_ids})
