"""
Upload Card Lambda Handler

Accepts a signed multipart POST with a PDF in field `pdf`,
stores it in S3 and returns its URL.
1. Rejects anything but POST
2. Verifies the shop/timestamp/hmac query signature
3. Extracts the PDF from the multipart body
4. Uploads it under cards/ and returns the file URL
"""

import base64
import binascii
import json
import logging

try:
    from . import config, form, signature, storage
except ImportError:
    import config
    import form
    import signature
    import storage

logger = logging.getLogger()
logger.setLevel(logging.INFO)

FILE_FIELD = "pdf"
AUTH_PARAMS = ("shop", "timestamp", "hmac")

AUTH_ERROR = "Invalid or missing HMAC/shop/timestamp"
MISSING_FILE_ERROR = "No PDF file uploaded"
MALFORMED_ERROR = "Malformed multipart body"
TOO_LARGE_ERROR = "PDF file too large"
UPLOAD_ERROR = "Upload to storage failed"

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
}

_settings: config.Settings | None = None
_s3 = None


def init(settings: config.Settings | None = None, s3=None) -> None:
    """Load settings and create the S3 client once per process."""
    global _settings, _s3

    if _settings is not None:
        return

    settings = settings or config.load_settings()
    logger.setLevel(settings.log_level)
    _s3 = s3 or storage.create_client(settings)
    _settings = settings
    logger.info(
        "Initialized upload endpoint for app %s on %s (bucket %s)",
        settings.api_key,
        settings.host_name,
        settings.bucket_name,
    )


def handler(event, context):
    """Handle one upload request."""
    init()

    if _request_method(event) != "POST":
        return {"statusCode": 405, "headers": {"Allow": "POST"}, "body": ""}

    query = event.get("queryStringParameters") or {}
    if not all(query.get(name) for name in AUTH_PARAMS):
        logger.info("Rejected upload: missing auth parameters")
        return _json(401, {"error": AUTH_ERROR})

    if not signature.verify_query(query, _settings.api_secret, max_age=_settings.hmac_max_age):
        logger.info("Rejected upload: signature check failed")
        return _json(401, {"error": AUTH_ERROR})

    try:
        uploaded = form.extract_file(
            _request_body(event),
            _header(event, "content-type"),
            FILE_FIELD,
            _settings.max_upload_size,
        )
    except form.PayloadTooLargeError as exc:
        logger.warning("Rejected upload from %s: %s", query["shop"], exc)
        return _json(413, {"error": TOO_LARGE_ERROR})
    except form.MalformedPayloadError as exc:
        logger.warning("Malformed upload from %s: %s", query["shop"], exc)
        return _json(400, {"error": MALFORMED_ERROR})

    if uploaded is None:
        logger.info("No %s file in upload from %s", FILE_FIELD, query["shop"])
        return _json(400, {"error": MISSING_FILE_ERROR})

    key = storage.make_object_key()
    try:
        file_url = storage.upload_raw(
            _s3,
            _settings,
            key,
            uploaded.data,
            metadata={"shop": query["shop"], "original-filename": uploaded.file_name},
        )
    except storage.UploadError:
        logger.exception("Storage upload failed for %s", key)
        return _json(500, {"error": UPLOAD_ERROR})

    return _json(200, {"file_url": file_url})


def _json(status: int, payload: dict) -> dict:
    return {"statusCode": status, "headers": dict(JSON_HEADERS), "body": json.dumps(payload)}


def _request_method(event) -> str:
    http = (event.get("requestContext") or {}).get("http") or {}
    method = event.get("httpMethod") or http.get("method")
    return (method or "").upper()


def _header(event, name: str) -> str | None:
    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _request_body(event) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise form.MalformedPayloadError("Body is not valid base64") from exc
    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")
