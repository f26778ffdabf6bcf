"""
Fire concurrent accepts at one repair request against the configured database.

Usage (from backend/):
    DJANGO_SETTINGS_MODULE=repairhub.settings.settings python scripts/run_accept_race.py --providers 8
"""

import argparse
import os
import sys
import threading
from pathlib import Path

import django

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "repairhub.settings.settings")
django.setup()

from django.db import connection  # noqa: E402
from django.utils import timezone  # noqa: E402
from accounts.models import User  # noqa: E402
from providers.models import MobileTechnician  # noqa: E402
from repairs.models import JobOffer, RepairRequest  # noqa: E402
from services.dispatch import dispatch_repair_request  # noqa: E402
from services.offers import DispatchError, accept_job_offer  # noqa: E402

DEMO_LAT = 41.9028
DEMO_LON = 12.4964


def ensure_customer(username: str) -> User:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={
            "role": User.ROLE_CUSTOMER,
            "email": f"{username}@example.com",
        },
    )
    if created:
        user.set_password("demo1234")
        user.save()
    return user


def ensure_technician(username: str, lat: float, lon: float) -> MobileTechnician:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={
            "role": User.ROLE_TECHNICIAN,
            "email": f"{username}@example.com",
        },
    )
    if created:
        user.set_password("demo1234")
        user.save()

    technician, _ = MobileTechnician.objects.update_or_create(
        user=user,
        defaults={
            "full_name": username.replace("_", " ").title(),
            "status": MobileTechnician.STATUS_APPROVED,
            "approved_at": timezone.now(),
            "service_radius_km": 15,
            "latitude": lat,
            "longitude": lon,
        },
    )
    return technician


def create_demo_repair(customer: User) -> RepairRequest:
    return RepairRequest.objects.create(
        customer=customer,
        device_type="smartphone",
        device_brand="Demo",
        issue_description="Accept race demo",
        customer_latitude=DEMO_LAT,
        customer_longitude=DEMO_LON,
    )


def race(offers):
    barrier = threading.Barrier(len(offers))
    outcomes = {}

    def attempt(offer):
        try:
            barrier.wait()
            accept_job_offer(offer.id, offer.provider_type, offer.provider_id)
            outcomes[offer.id] = "won"
        except DispatchError as e:
            outcomes[offer.id] = e.error_code
        finally:
            connection.close()

    threads = [threading.Thread(target=attempt, args=(offer,)) for offer in offers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--providers", type=int, default=5)
    args = parser.parse_args()

    customer = ensure_customer("race_demo_customer")
    for index in range(args.providers):
        ensure_technician(f"race_demo_tech_{index}", DEMO_LAT + 0.001 * index, DEMO_LON)

    repair = create_demo_repair(customer)
    result = dispatch_repair_request(repair.id)
    print(f"Repair {repair.id}: {result.offers_created} offers created")
    if not result.success:
        return

    outcomes = race(result.offers)
    for offer in result.offers:
        print(f"  offer {offer.id} ({offer.provider_type} {offer.provider_id}): {outcomes[offer.id]}")

    repair.refresh_from_db()
    accepted = JobOffer.objects.filter(repair_request=repair, status=JobOffer.STATUS_ACCEPTED).count()
    print(f"Repair status={repair.status} assigned={repair.assigned_provider_type} {repair.assigned_provider_id}")
    print(f"Accepted offers: {accepted}")


if __name__ == "__main__":
    main()
