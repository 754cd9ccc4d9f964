import asyncio
from datetime import date, timedelta
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chalet_booking.booking.models import SearchQuery
from chalet_booking.booking.rsr_client import RsrApiClient
from chalet_booking.core.logging import setup_logging


async def main(unit_id: int | None = None) -> None:
    client = RsrApiClient()
    check_in = date.today() + timedelta(days=7)
    check_out = check_in + timedelta(days=2)
    try:
        chalets = await client.list_chalets(
            SearchQuery(check_in=check_in.isoformat(), check_out=check_out.isoformat())
        )
        for chalet in chalets:
            print(chalet.id, chalet.title("en"), chalet.price_per_night)

        target = unit_id or (chalets[0].id if chalets else None)
        if target is None:
            print("No chalets returned")
            return
        result = await client.check_availability(target, check_in.isoformat(), check_out.isoformat())
    finally:
        await client.close()

    print("Check-in:", check_in)
    print("Check-out:", check_out)
    print("Chalet", target, "available:", result.is_available)


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main(int(sys.argv[1]) if len(sys.argv) > 1 else None))
