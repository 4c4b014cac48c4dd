import datetime
import kopf


@kopf.on.probe(id='now')
def get_current_timestamp(**kwargs):
    """Liveness probe reporting the operator's current UTC time."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()
