"""Configuration data model."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class RateLimitConfig:
    """Token bucket and adaptive control settings."""

    requests_per_second: float = 1.0
    burst_size: float = 5.0
    max_queue_size: int = 100
    min_rate: float = 0.1
    max_rate: float = 10.0
    cooldown_seconds: float = 60.0
    cooldown_after_denials: int = 3
    adjust_interval: float = 30.0
    window_seconds: float = 300.0
    min_samples: int = 10
    error_threshold: float = 0.1
    low_error_threshold: float = 0.02
    rejection_threshold: float = 0.1
    latency_threshold_ms: float = 5000.0
    adaptive: bool = True

    def __post_init__(self):
        if self.requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if self.burst_size < 1:
            raise ValueError("burst_size must be at least 1")
        if self.max_queue_size < 0:
            raise ValueError("max_queue_size cannot be negative")
        if not (0 < self.min_rate <= self.max_rate):
            raise ValueError("min_rate must be positive and not above max_rate")
        if self.cooldown_after_denials < 1:
            raise ValueError("cooldown_after_denials must be at least 1")


@dataclass
class ProxyConfig:
    """Proxy pool settings."""

    enabled: bool = False
    proxies: List[str] = field(default_factory=list)
    failure_threshold: int = 3
    health_check_interval: float = 300.0
    probe_url: str = "https://httpbin.org/ip"
    probe_timeout: float = 10.0
    prefer_region: Optional[str] = None
    # Fall back to HTTP(S)_PROXY when no proxies are listed
    use_system_proxy: bool = True

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.health_check_interval <= 0:
            raise ValueError("health_check_interval must be positive")


@dataclass
class DetectionConfig:
    """Anti-automation signal thresholds."""

    blocked_status_codes: List[int] = field(default_factory=lambda: [403, 429, 503, 520, 521, 522, 523, 524])
    header_patterns: Dict[str, str] = field(default_factory=lambda: {
        'cf-mitigated': r'challenge',
        'server': r'ddos-guard|sucuri',
        'x-datadome': r'.+',
        'x-amzn-waf-action': r'captcha|challenge|block',
    })
    content_patterns: List[str] = field(default_factory=lambda: [
        r'captcha',
        r'just a moment\.\.\.',
        r'attention required!',
        r'checking your browser',
        r'access denied',
        r'too many requests',
        r'verify you are (a )?human',
        r'ddos protection',
    ])
    slow_response_ms: float = 5000.0
    min_content_length: int = 100
    history_size: int = 100

    def __post_init__(self):
        if self.slow_response_ms <= 0:
            raise ValueError("slow_response_ms must be positive")
        if self.history_size < 1:
            raise ValueError("history_size must be at least 1")


@dataclass
class RetryConfig:
    """HTTP client retry and timeout settings."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    timeout: float = 30.0
    jitter: bool = True
    cache_ttl: float = 600.0
    cache_max_entries: int = 500
    user_agents: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError("retry delays must satisfy 0 <= base_delay <= max_delay")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")


@dataclass
class OrchestratorConfig:
    """Adapter selection and batch settings."""

    strategy: str = "fallback_chain"
    adapters: List[str] = field(default_factory=lambda: ['javbus', 'fc2'])
    priority: Dict[str, List[str]] = field(default_factory=lambda: {
        'standard': ['javbus'],
        'fc2': ['fc2'],
    })
    completeness_weights: Dict[str, float] = field(default_factory=dict)
    timeout_seconds: float = 60.0
    max_concurrent_requests: int = 3
    batch_delay_seconds: float = 1.0
    cache_duration_minutes: float = 60.0

    def __post_init__(self):
        if self.strategy not in ('fallback_chain', 'parallel_race', 'merge_all', 'smart_best'):
            raise ValueError(f"Unknown strategy: {self.strategy}")
        if self.max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.batch_delay_seconds < 0:
            raise ValueError("batch_delay_seconds cannot be negative")


@dataclass
class NormalizerConfig:
    ignore_patterns: Optional[List[str]] = None
    max_parent_depth: int = 3


@dataclass
class LoggingSettings:
    level: str = "INFO"
    log_dir: Optional[str] = None
    file_logging: bool = False
    colored_console: bool = True
    json_format: bool = False

    def __post_init__(self):
        self.level = self.level.upper()
        if self.level not in LOG_LEVELS:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")


@dataclass
class EngineConfig:
    """Complete engine configuration."""

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    anti_bot: DetectionConfig = field(default_factory=DetectionConfig)
    http: RetryConfig = field(default_factory=RetryConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
