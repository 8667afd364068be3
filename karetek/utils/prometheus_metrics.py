from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Define metrics
REQUEST_COUNT = Counter(
    'karetek_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'karetek_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint']
)

LLM_REQUESTS = Counter(
    'karetek_llm_requests_total',
    'Total number of LLM requests',
    ['provider', 'status']
)

LLM_REQUEST_DURATION = Histogram(
    'karetek_llm_request_duration_seconds',
    'LLM request duration in seconds',
    ['provider']
)

TTS_REQUESTS = Counter(
    'karetek_tts_requests_total',
    'Total number of text-to-speech requests',
    ['provider', 'status']
)

TTS_REQUEST_DURATION = Histogram(
    'karetek_tts_request_duration_seconds',
    'Text-to-speech request duration in seconds',
    ['provider']
)

CONSULTATION_SAVES = Counter(
    'karetek_consultation_saves_total',
    'Consultation upserts by outcome',
    ['status']
)

RATE_LIMITED = Counter(
    'karetek_rate_limited_total',
    'Requests rejected by the rate limiter'
)

def get_metrics() -> bytes:
    """Get Prometheus metrics in text format"""
    return generate_latest()

def get_metrics_content_type() -> str:
    """Get Prometheus metrics content type"""
    return CONTENT_TYPE_LATEST

class MetricsCollector:
    """Centralized metrics collection"""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: str, duration: float):
        """Record HTTP request metrics"""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_llm_request(provider: str, duration: float, success: bool = True):
        """Record LLM request metrics"""
        status = "success" if success else "error"
        LLM_REQUESTS.labels(provider=provider, status=status).inc()
        LLM_REQUEST_DURATION.labels(provider=provider).observe(duration)

    @staticmethod
    def record_tts_request(provider: str, duration: float, success: bool = True):
        """Record text-to-speech request metrics"""
        status = "success" if success else "error"
        TTS_REQUESTS.labels(provider=provider, status=status).inc()
        TTS_REQUEST_DURATION.labels(provider=provider).observe(duration)

    @staticmethod
    def record_consultation_save(success: bool = True):
        status = "success" if success else "error"
        CONSULTATION_SAVES.labels(status=status).inc()

    @staticmethod
    def record_rate_limited():
        RATE_LIMITED.inc()

# Global metrics collector instance
metrics = MetricsCollector()
