from flask import Flask, request, jsonify

from config import Config, setup_logging
from redemption import (
    TrueMoneyVoucherRedemption, RedemptionOutcome, Success, UpstreamError, UnclassifiedError,
)


def render_outcome(outcome):
    """Turn a redemption outcome into a (body, status) pair for jsonify."""
    if not isinstance(outcome, RedemptionOutcome):
        raise TypeError(f"not a redemption outcome: {outcome!r}")

    if isinstance(outcome, Success):
        return {"success": True, "data": outcome.payload, "message": outcome.message}, 200

    if isinstance(outcome, UpstreamError):
        body = {"success": False, "error": outcome.user_message, "upstream": outcome.upstream}
        if outcome.code:
            body["code"] = outcome.code
        status = outcome.http_status if outcome.http_status >= 400 else 400
        return body, status

    return {"success": False, "error": outcome.message}, outcome.http_status


def create_app(config=None, redeemer=None):
    config = config or Config.from_env()
    setup_logging(config.log_level)

    app = Flask(__name__)
    app.config["REDEEMER"] = redeemer or TrueMoneyVoucherRedemption(config)
    app.config["SETTINGS"] = config

    @app.after_request
    def log_request(response):
        app.logger.info(f'{request.remote_addr} "{request.method} {request.path}" {response.status_code}')
        return response

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/redeem", methods=["POST"])
    def redeem():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        mobile_number = data.get("mobile_number")
        campaign_link = data.get("campaign_link")
        if not mobile_number or not campaign_link:
            return jsonify({"success": False, "error": "mobile_number and campaign_link are required"}), 400

        outcome = app.config["REDEEMER"].redeem(mobile_number, campaign_link)
        if isinstance(outcome, UnclassifiedError):
            app.logger.error(f"redeem error: {outcome.message}", exc_info=outcome.error)
        elif not outcome.ok:
            app.logger.warning(f"redeem error: {outcome.message}")

        body, status = render_outcome(outcome)
        return jsonify(body), status

    return app


if __name__ == "__main__":
    settings = Config.from_env()
    app = create_app(settings)
    app.run(host="0.0.0.0", port=settings.port)
