import json
import logging
from typing import Any, Callable, Dict, Tuple

Handler = Callable[[Dict[str, Any]], Dict[str, Any]]


class LambdaRouter:
    """Simple router for API Gateway / function-URL events.

    Routes are keyed by ``(method, name)`` where ``name`` is the last path
    segment, so ``/functions/v1/serve-pdf`` and ``/serve-pdf`` both match.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.cors_headers = {
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Headers': 'authorization, x-client-info, apikey, content-type',
            'Access-Control-Allow-Methods': 'OPTIONS, POST, GET',
        }

    @staticmethod
    def route_name(path: str) -> str:
        segments = [s for s in (path or '').split('?', 1)[0].split('/') if s]
        return segments[-1] if segments else ''

    def handle(self, event: Dict[str, Any], handlers: Dict[Tuple[str, str], Handler]) -> Dict[str, Any]:
        try:
            path = event.get('path') or event.get('rawPath') or ''
            method = (event.get('httpMethod') or event.get('requestContext', {}).get('http', {}).get('method') or '').upper()

            if method == 'OPTIONS':
                return {'statusCode': 200, 'headers': dict(self.cors_headers), 'body': ''}

            self.logger.info("Processing request: %s %s", method, path)

            func = handlers.get((method, self.route_name(path)))
            if func:
                response = func(event)
            else:
                response = {
                    'statusCode': 404,
                    'headers': {'Content-Type': 'application/json'},
                    'body': json.dumps({'error': 'Not found'}),
                }

            response.setdefault('headers', {})
            response['headers'].update(self.cors_headers)
            return response

        except Exception as e:
            self.logger.error("Lambda handler error: %s", e)
            return {
                'statusCode': 500,
                'headers': {'Content-Type': 'application/json', **self.cors_headers},
                'body': json.dumps({'error': str(e) or 'Internal server error'}),
            }
