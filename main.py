"""
FPL Live Backend: entry point and re-exports.

Code lives in fpl_live/ modules:
- config.py:      LIVE_CONFIG + scoring/auto-sub/http dataclass configs
- constants.py:   API base URL, labels, chip codes, numeric coercion
- models.py:      Ingested dataclasses, computed results, Pydantic schemas
- cache.py:       LiveDataCache (one per app/session)
- calculators.py: BPS bonus projection, player live computation
- autosubs.py:    Auto-substitutions, multipliers, squad totals
- services.py:    HTTP client, fixture/live fetchers, cache builders
- endpoints.py:   FastAPI app + live gameweek endpoints

Tests import from `main`; star-imports re-export everything.
"""

# Re-export everything so `from main import X` works
from fpl_live.config import *       # noqa: F401,F403
from fpl_live.constants import *    # noqa: F401,F403
from fpl_live.models import *       # noqa: F401,F403
from fpl_live.cache import *        # noqa: F401,F403
from fpl_live.calculators import *  # noqa: F401,F403
from fpl_live.autosubs import *     # noqa: F401,F403
from fpl_live.services import *     # noqa: F401,F403
from fpl_live.endpoints import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
