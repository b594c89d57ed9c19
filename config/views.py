from django.db import connection
from django.http import JsonResponse


def health_check(request):
    """Liveness probe that also touches the database."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception:
        return JsonResponse({'status': 'unhealthy'}, status=503)
    return JsonResponse({'status': 'ok'})


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'ok': False,
        'error': {'code': 'NOT_FOUND', 'message': 'Not found', 'details': None},
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'ok': False,
        'error': {'code': 'UNKNOWN_ERROR', 'message': 'Internal server error', 'details': None},
    }, status=500)
