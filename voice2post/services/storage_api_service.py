"""Storage bucket diagnostics."""

from flask import jsonify

from . import guards

SAMPLE_LIMIT = 5


def get_storage_info(app_ctx, request):
    _decoded_token, error_response = guards.authenticate(app_ctx, request)
    if error_response:
        return error_response

    bucket = app_ctx.bucket
    prefix = app_ctx.config.audio_storage_prefix.strip('/')
    try:
        if not bucket.exists():
            return jsonify({'error': f'Bucket {bucket.name} not found'}), 404
        blobs = list(bucket.list_blobs(prefix=f'{prefix}/' if prefix else None, max_results=SAMPLE_LIMIT))
    except Exception as e:
        app_ctx.logger.error(f"Storage info error: {e}")
        return jsonify({'error': 'Server error', 'details': str(e)}), 500

    return jsonify({
        'success': True,
        'bucket': bucket.name,
        'prefix': prefix,
        'filesCount': len(blobs),
    })
