"""
Service registry - wires the report services once at startup and hands
them out by name from an explicit mapping.
"""
import logging

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from .bulk import BulkSubmissionCoordinator
from .guard import SubmissionGuard
from .lifecycle import LifecycleController
from .review import ReviewProcessor
from .statistics import ReportStatistics
from .store import ReportStore
from .submission import ReportSubmissionService

logger = logging.getLogger(__name__)

_services = {}


def build_services(store=None, batch_size=None, timeout=None):
    """
    Build the full service graph around one store.

    Returns:
        dict: service name -> instance
    """
    store = store or ReportStore()
    guard = SubmissionGuard(store)
    lifecycle = LifecycleController(store)
    submission = ReportSubmissionService(store, guard, lifecycle)
    return {
        'store': store,
        'guard': guard,
        'lifecycle': lifecycle,
        'submission': submission,
        'bulk': BulkSubmissionCoordinator(submission, batch_size=batch_size, timeout=timeout, guard=guard),
        'review': ReviewProcessor(store, lifecycle),
        'statistics': ReportStatistics(store),
    }


def configure(**kwargs):
    """Replace the registered services; called from AppConfig.ready()"""
    _services.clear()
    _services.update(build_services(**kwargs))
    logger.debug(f"Registered report services: {', '.join(sorted(_services))}")
    return dict(_services)


def get_service(name):
    if not _services:
        configure()
    try:
        return _services[name]
    except KeyError:
        raise ImproperlyConfigured(
            f"Unknown report service '{name}'. Available: {', '.join(sorted(_services))}"
        )


def registered_services():
    if not _services:
        configure()
    return dict(_services)


async def check_services():
    """
    Health check for the registered services.

    Returns:
        dict: timestamp, per-service availability and method counts, and
        the store's connectivity result
    """
    results = {
        'timestamp': timezone.now().isoformat(),
        'services': {},
    }
    for name, service in registered_services().items():
        methods = [
            attr for attr in dir(service)
            if not attr.startswith('_') and callable(getattr(service, attr))
        ]
        results['services'][name] = {
            'available': service is not None,
            'methods': len(methods),
        }

    try:
        results['store'] = {'reports': await get_service('store').ping()}
    except Exception as e:
        logger.error(f"Report store health check failed: {str(e)}")
        results['store'] = {'error': str(e)}

    return results
