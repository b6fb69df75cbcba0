#!/usr/bin/env python3
"""
Newline-delimited JSON-RPC 2.0 front end for VerifyService.

One request per stdin line, one response per stdout line. Diagnostics go to
stderr through logging so they never mix with responses.

    verify-input-rpc --config ./local-config.yaml
    {"jsonrpc":"2.0","id":1,"method":"verify_form","params":{"form_name":"login","values":{...}}}
"""

import argparse
import json
import logging
import signal
import sys
from typing import Any, Callable, Dict, Optional

from verify_input import NullFeedbackSink, VerifyService

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """A request that is answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class VerifyJsonRpcServer:
    """Dispatches JSON-RPC requests to a VerifyService."""

    ERROR_PARSE = -32700
    ERROR_INVALID_REQUEST = -32600
    ERROR_METHOD_NOT_FOUND = -32601
    ERROR_INVALID_PARAMS = -32602
    ERROR_INTERNAL = -32000

    def __init__(self, debug: bool = False, config_path: Optional[str] = None):
        # Failure messages travel in the response, not through a sink
        self.service = VerifyService(config_path=config_path, feedback_sink=NullFeedbackSink())
        self.debug = debug
        self.running = False
        self.methods: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "verify_form": self._verify_form,
            "verify_fields": self._verify_fields,
            "batch_verify": self._batch_verify,
            "batch_file_verify": self._batch_file_verify,
            "discover_forms": lambda params: self.service.discover_forms(),
            "reload_forms": self._reload_forms,
            "get_config_age": lambda params: {"config_age": self.service.get_config_age()},
        }

    def start_server(self):
        """Answer requests from stdin until EOF or stop_server()."""
        self.running = True
        logger.debug("JSON-RPC server started")
        for line in sys.stdin:
            if not self.running:
                break
            if line.strip():
                self._write(self.handle_request(line))
        self.running = False
        logger.debug("JSON-RPC server stopped")

    def stop_server(self):
        self.running = False

    def handle_request(self, request_json: str) -> Dict[str, Any]:
        """Turn one request line into a response dict (never raises)."""
        request_id = None
        try:
            request = self._parse(request_json)
            request_id = request.get("id")
            method, params = self._route(request)
            return self._response(request_id, result=self._call(method, params))
        except RpcError as e:
            logger.debug(f"Request {request_id} answered with error {e.code}: {e.message}")
            return self._response(request_id, error={"code": e.code, "message": e.message})

    def _parse(self, request_json: str) -> Dict[str, Any]:
        try:
            request = json.loads(request_json)
        except json.JSONDecodeError as e:
            raise RpcError(self.ERROR_PARSE, f"Parse error: {e}") from e
        if not isinstance(request, dict):
            raise RpcError(self.ERROR_INVALID_REQUEST, "Request must be a JSON object")
        if request.get("jsonrpc") != "2.0":
            raise RpcError(
                self.ERROR_INVALID_REQUEST, f"Invalid JSON-RPC version: {request.get('jsonrpc')}"
            )
        return request

    def _route(self, request: Dict[str, Any]):
        method = request.get("method")
        params = request.get("params", {})
        if not method:
            raise RpcError(self.ERROR_INVALID_REQUEST, "Missing 'method' field")
        if not isinstance(params, dict):
            raise RpcError(
                self.ERROR_INVALID_PARAMS, f"Params must be an object, got {type(params).__name__}"
            )
        if method not in self.methods:
            raise RpcError(self.ERROR_METHOD_NOT_FOUND, f"Method not found: {method}")
        return method, params

    def _call(self, method: str, params: Dict[str, Any]) -> Any:
        logger.debug(f"Calling {method}")
        try:
            return self.methods[method](params)
        # MisconfiguredFieldError is a TypeError
        except (ValueError, TypeError) as e:
            raise RpcError(self.ERROR_INVALID_PARAMS, str(e)) from e
        except Exception as e:
            logger.exception(f"{method} failed")
            raise RpcError(self.ERROR_INTERNAL, f"Internal error: {e}") from e

    @staticmethod
    def _required(params: Dict[str, Any], *names: str):
        missing = [name for name in names if params.get(name) is None]
        if missing:
            raise ValueError(f"Missing required parameter: {', '.join(missing)}")
        return [params[name] for name in names]

    def _verify_form(self, params):
        form_name, values = self._required(params, "form_name", "values")
        return self.service.verify_form(form_name, values).to_dict()

    def _verify_fields(self, params):
        (fields,) = self._required(params, "fields")
        return self.service.verify_fields(fields).to_dict()

    def _batch_verify(self, params):
        records, id_fields, form_name = self._required(params, "records", "id_fields", "form_name")
        return self.service.batch_verify(records, id_fields, form_name)

    def _batch_file_verify(self, params):
        file_uri, id_fields, form_name = self._required(
            params, "file_uri", "id_fields", "form_name"
        )
        return self.service.batch_file_verify(file_uri, id_fields, form_name)

    def _reload_forms(self, params):
        self.service.reload_forms()
        return {"status": "ok", "message": "Forms reloaded successfully"}

    @staticmethod
    def _response(request_id: Any, **body: Any) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, **body}

    def _write(self, response: Dict[str, Any]):
        sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
        sys.stdout.flush()


def main():
    parser = argparse.ArgumentParser(
        description="Serve verify-input over newline-delimited JSON-RPC 2.0 on stdin/stdout"
    )
    parser.add_argument("--debug", action="store_true", help="log requests to stderr")
    parser.add_argument("--config", default=None, help="path to a local-config.yaml")
    args = parser.parse_args()

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    server = VerifyJsonRpcServer(debug=args.debug, config_path=args.config)
    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, lambda signum, frame: server.stop_server())
    server.start_server()


if __name__ == "__main__":
    main()
