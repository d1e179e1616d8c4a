# scripts/test/simulate_telemetry.py
"""
Synthetic telemetry producer. Publishes readings to the broker the way a car
would and tells the backend when it starts/stops (SIMULATOR_STATUS).

Usage:
  python scripts/test/simulate_telemetry.py --vehicles 1 2 3 --interval 5
  python scripts/test/simulate_telemetry.py --vehicles 1 --once --fuel 5 --temperature 65 --speed 160
"""

import argparse
import json
import random
import time
from datetime import datetime
import paho.mqtt.client as mqtt
import requests

BACKEND_URL = "http://localhost:8080/api/v1"

LOCATIONS = [
    "New York, NY", "Los Angeles, CA", "Chicago, IL", "Houston, TX", "Phoenix, AZ",
    "Philadelphia, PA", "San Antonio, TX", "San Diego, CA", "Dallas, TX", "San Jose, CA",
]
STATUSES = ["IDLE", "MOVING", "PARKED", "MAINTENANCE"]


def generate_speed():
    # 70% city (0-80), 25% highway (80-120), 5% speeding (120-140)
    chance = random.random()
    if chance < 0.70:
        return random.randint(0, 80)
    if chance < 0.95:
        return random.randint(80, 120)
    return random.randint(120, 140)


def generate_fuel():
    # 60% normal (20-100), 30% low (10-30), 10% very low (5-15)
    chance = random.random()
    if chance < 0.60:
        return random.randint(20, 100)
    if chance < 0.90:
        return random.randint(10, 30)
    return random.randint(5, 15)


def generate_temperature():
    # 80% normal (10-40), 15% hot (40-70), 5% cold (-10-10)
    chance = random.random()
    if chance < 0.80:
        return random.randint(10, 40)
    if chance < 0.95:
        return random.randint(40, 70)
    return random.randint(-10, 10)


def generate_reading(args):
    return {
        "speed": args.speed if args.speed is not None else generate_speed(),
        "fuelLevel": args.fuel if args.fuel is not None else generate_fuel(),
        "temperature": args.temperature if args.temperature is not None else generate_temperature(),
        "location": random.choice(LOCATIONS),
        "timestamp": datetime.utcnow().isoformat(),
    }


def report_running(running):
    try:
        requests.post(f"{BACKEND_URL}/system/simulator-status", json={"running": running}, timeout=5)
    except requests.exceptions.RequestException as e:
        print(f"⚠️  Could not report simulator status: {e}")


def main():
    parser = argparse.ArgumentParser(description="Publish synthetic car telemetry over MQTT")
    parser.add_argument("--broker", default="localhost")
    parser.add_argument("--port", type=int, default=1883)
    parser.add_argument("--prefix", default="smartcar")
    parser.add_argument("--vehicles", type=int, nargs="+", default=[1])
    parser.add_argument("--interval", type=float, default=5.0)
    parser.add_argument("--once", action="store_true", help="Publish one round and exit")
    parser.add_argument("--speed", type=int)
    parser.add_argument("--fuel", type=int)
    parser.add_argument("--temperature", type=int)
    args = parser.parse_args()

    client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
    client.connect(args.broker, args.port, 60)
    client.loop_start()
    report_running(True)

    try:
        while True:
            for vehicle_id in args.vehicles:
                reading = generate_reading(args)
                topic = f"{args.prefix}/{vehicle_id}/telemetry"
                client.publish(topic, json.dumps(reading), qos=1).wait_for_publish(5)
                print(f"✅ {topic} → {reading}")

                # Occasional status change
                if random.randint(0, 9) == 0:
                    status = {"status": random.choice(STATUSES), "timestamp": datetime.utcnow().isoformat()}
                    client.publish(f"{args.prefix}/{vehicle_id}/status", json.dumps(status), qos=1)
                    print(f"   status → {status['status']}")
            if args.once:
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        pass
    finally:
        report_running(False)
        client.loop_stop()
        client.disconnect()


if __name__ == "__main__":
    main()
