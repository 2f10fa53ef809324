from sitescan.analyzers.accessibility import AccessibilityAnalyzer
from sitescan.analyzers.api_surface import ApiSurfaceAnalyzer
from sitescan.analyzers.interactive import InteractiveElementsAnalyzer
from sitescan.analyzers.performance import PerformanceAnalyzer
from sitescan.analyzers.security import SecurityAnalyzer
from sitescan.analyzers.tech_stack import TechStackAnalyzer
from sitescan.core import config

# analyzer name -> Scan column holding its payload
RESULT_COLUMNS = {
    "security": "security_results",
    "performance": "performance_results",
    "accessibility": "accessibility_results",
    "api": "api_results",
    "tech_stack": "tech_stack",
    "interactive": "interactive_results",
}


def default_analyzers():
    return [
        InteractiveElementsAnalyzer(),
        ApiSurfaceAnalyzer(),
        SecurityAnalyzer(),
        PerformanceAnalyzer(config.PAGESPEED_API_KEY or None, pagespeed_timeout=config.PAGESPEED_TIMEOUT_SEC),
        AccessibilityAnalyzer(),
        TechStackAnalyzer(),
    ]
