from datetime import date

from app import create_app
from services.alerts_service import run_alerts_if_needed


def run_alerts():
    app = create_app()

    with app.app_context():
        created = run_alerts_if_needed(today=date.today())

        if created:
            print(f"✔ Sent {len(created)} alerts")
        else:
            print("ℹ No alerts to send")


if __name__ == "__main__":
    run_alerts()
