"""Fire concurrent review submissions at one venue and check the aggregate afterwards."""

import argparse
import asyncio
import json
import os
import random

import httpx


async def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--base", default=os.environ.get("BASE", "http://127.0.0.1:8000"))
    ap.add_argument("--venue", required=True)
    ap.add_argument("--tasks", type=int, default=12)
    ap.add_argument(
        "--same-user",
        action="store_true",
        help="submit every review as one user (exactly one should succeed)",
    )
    args = ap.parse_args()

    run_tag = f"race-{random.randrange(10**6):06d}"

    async with httpx.AsyncClient(base_url=args.base, timeout=10) as client:
        before = (await client.get(f"/v1/venues/{args.venue}/aggregate")).json()

        async def attempt(i):
            user = run_tag if args.same_user else f"{run_tag}-{i}"
            payload = {"user_id": user, "venue_id": args.venue, "rating": random.randint(1, 5)}
            r = await client.post("/v1/reviews", json=payload)
            review_id = r.json().get("review", {}).get("id") if r.status_code == 201 else None
            return r.status_code, payload["rating"], review_id, r.text

        results = await asyncio.gather(*[attempt(i) for i in range(args.tasks)])

        accepted = [(rating, rid) for code, rating, rid, _ in results if code == 201]
        duplicates = sum(1 for code, *_ in results if code == 409)
        others = [(code, body) for code, _, _, body in results if code not in (201, 409)]
        during = (await client.get(f"/v1/venues/{args.venue}/aggregate")).json()

        expected_count = before["review_count"] + len(accepted)
        expected_total = before["average_rating"] * before["review_count"] + sum(
            rating for rating, _ in accepted
        )
        consistent = during["review_count"] == expected_count and abs(
            during["average_rating"] * during["review_count"] - expected_total
        ) < 1e-6

        for _, review_id in accepted:
            await client.delete(f"/v1/reviews/{review_id}")
        after = (await client.get(f"/v1/venues/{args.venue}/aggregate")).json()

        print(
            json.dumps(
                {
                    "venue": args.venue,
                    "attempts": args.tasks,
                    "accepted": len(accepted),
                    "duplicates": duplicates,
                    "others": others,
                    "aggregate_before": before,
                    "aggregate_after_submit": during,
                    "aggregate_after_cleanup": after,
                    "consistent": consistent,
                },
                indent=2,
            )
        )


if __name__ == "__main__":
    asyncio.run(main())
