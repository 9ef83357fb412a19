# clinic_core/tests/helpers.py
import threading

from django.db import connection


def tenant_headers(tenant):
    """
    Clinic selector header. DRF test client requires HTTP_ prefix.
    """
    return {"HTTP_X_TENANT_ID": str(tenant.id)}


def error_kind(response):
    return response.json()["error"]["kind"]


def run_concurrently(*calls):
    """
    Start every call on its own thread at the same moment and return each
    outcome (result or raised exception) in call order. Needs a database
    with real row locks and `django_db(transaction=True)`.
    """
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def _run(index, fn):
        try:
            barrier.wait()
            outcomes[index] = fn()
        except Exception as exc:
            outcomes[index] = exc
        finally:
            connection.close()

    threads = [threading.Thread(target=_run, args=(i, fn)) for i, fn in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return outcomes
