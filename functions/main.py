# Cloud Function entry point for remote composition
from firebase_functions import https_fn


@https_fn.on_request(max_instances=10, region="us-central1", memory=2048, timeout_sec=540)
def compose(req: https_fn.Request) -> https_fn.Response:
    try:
        # Lazy import to catch import-time errors
        from vidreach.api_server import app

        with app.request_context(req.environ):
            return app.full_dispatch_request()
    except Exception as e:
        import traceback
        return https_fn.Response(f"CRITICAL FUNCTION ERROR: {str(e)}\n{traceback.format_exc()}", status=500)
