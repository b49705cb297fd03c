import logging

from pythonjsonlogger import jsonlogger

from kyc_review_service.app.observability import (
    inject_trace_context_into_kafka_headers,
    setup_json_logging,
    tracer,
)


def test_setup_json_logging_is_idempotent():
    setup_json_logging()
    setup_json_logging()

    json_handlers = [
        h for h in logging.getLogger().handlers if isinstance(h.formatter, jsonlogger.JsonFormatter)
    ]
    assert len(json_handlers) == 1


def test_trace_context_headers_inside_span():
    with tracer.start_as_current_span("publish-test") as span:
        headers = dict(inject_trace_context_into_kafka_headers())
        trace_id = format(span.get_span_context().trace_id, "032x")

    assert "traceparent" in headers
    assert isinstance(headers["traceparent"], bytes)
    assert trace_id in headers["traceparent"].decode("utf-8")


def test_trace_context_headers_without_span():
    assert inject_trace_context_into_kafka_headers() == []
