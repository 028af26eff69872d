# seed.py (in the project root)
import logging
import sys

from edudesk.core.config import settings
from edudesk.seeder import run_seeder

if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        run_seeder()
    except KeyboardInterrupt:
        print("\nSeeding cancelled by user")
    except Exception as e:
        print(f"Seeding failed: {e}")
        sys.exit(1)
