import logging

from flask import Blueprint, jsonify

from services.exceptions import (
    BusinessRuleError, DuplicateError,
    NotFoundError, ServiceError, ValidationError
)

logger = logging.getLogger(__name__)

# JSON API over competition documents
api_bp = Blueprint('api_bp', __name__, url_prefix='/api')


@api_bp.errorhandler(ServiceError)
def handle_service_error(error: ServiceError):
    if isinstance(error, ValidationError):
        status = 400
    elif isinstance(error, NotFoundError):
        status = 404
    elif isinstance(error, (DuplicateError, BusinessRuleError)):
        status = 409
    else:
        status = 500

    if status == 500:
        logger.error(f"{error.code}: {error.message}")
    else:
        logger.warning(f"Refused request ({status} {error.code}): {error.message}")
    return jsonify(error.to_dict()), status


# Import route modules to register them with api_bp
import routes.api.competition
