"""
API Smoke Testing Script
Logs into a running Sphere backend and times every read endpoint

This script:
1. Authenticates with business code, email and password
2. Calls each GET endpoint and measures its response time
3. Prints a per-app report and optionally saves the results as JSON

Usage: python api_smoke_test.py --business-code BXXXXXX --email admin@demo.test
"""
import argparse
import getpass
import json
import sys
import time
from datetime import datetime
from typing import Dict, List, Optional

import requests

DEFAULT_BASE_URL = "http://127.0.0.1:8000/api/v1"

ENDPOINTS = [
    ("Core - Health", "/health/", None),
    ("Core - Me", "/auth/me/", None),
    ("Core - Business", "/business/", None),
    ("Core - Users", "/users/", None),
    ("Core - Invitations", "/users/invitations/", None),
    ("Core - Audit logs", "/audit-logs/", None),
    ("Clients - List", "/clients/", {"page": 1, "limit": 50}),
    ("Tasks - List", "/tasks/", None),
    ("Tasks - Board", "/tasks/board/", None),
    ("Time - Records", "/time-records/", None),
    ("Time - Current timer", "/time-records/current/", None),
    ("Time - Weekly summary", "/time-records/summary/", {"view": "week"}),
    ("Time - Monthly summary", "/time-records/summary/", {"view": "month"}),
    ("Chat - Channels", "/chat/channels/", None),
    ("Wiki - Pages", "/wiki/pages/", None),
    ("Wiki - Tree", "/wiki/tree/", None),
    ("Wiki - Search", "/wiki/search/", {"q": "welcome"}),
    ("Reports - Dashboard", "/reports/dashboard/", None),
]


class APITester:
    """Class to handle API calls and timing"""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.results: List[Dict] = []
        self.session = requests.Session()

    def authenticate(self, business_code: str, email: str, password: str) -> bool:
        """Log in and attach the bearer token to the session"""
        print(f"🔐 Authenticating as {email} ({business_code})...")
        try:
            response = self.session.post(
                f"{self.base_url}/auth/login/",
                json={"business_code": business_code, "email": email, "password": password},
                timeout=10,
            )
        except requests.RequestException as e:
            print(f"❌ Authentication error: {e}")
            return False

        if response.status_code != 200:
            print(f"❌ Authentication failed: {response.status_code} {response.text[:200]}")
            return False

        token = response.json()['token']
        self.session.headers.update({'Authorization': f'Bearer {token}'})
        print("✅ Authentication successful!")
        return True

    def test_endpoint(self, name: str, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """Call one endpoint and record status, timing and item counts"""
        url = f"{self.base_url}{endpoint}"
        result = {
            'name': name,
            'endpoint': endpoint,
            'params': params or {},
            'timestamp': datetime.now().isoformat(),
        }
        try:
            start_time = time.perf_counter()
            response = self.session.get(url, params=params, timeout=30)
            result['response_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
        except requests.Timeout:
            result.update(status_code=0, response_time_ms=30000, success=False, error='Request timeout (30s)')
            self.results.append(result)
            return result
        except requests.RequestException as e:
            result.update(status_code=0, response_time_ms=0, success=False, error=str(e))
            self.results.append(result)
            return result

        result['status_code'] = response.status_code
        # 204 is the "no running timer" answer
        result['success'] = response.status_code in (200, 204)
        if response.status_code == 200:
            data = response.json()
            if isinstance(data, list):
                result['item_count'] = len(data)
            elif isinstance(data, dict) and 'results' in data:
                result['item_count'] = len(data['results'])
                result['total_count'] = data.get('count', 0)
        elif not result['success']:
            result['error'] = response.text[:500]

        self.results.append(result)
        return result

    def print_result(self, result: Dict):
        status_icon = "✅" if result['success'] else "❌"
        line = f"{status_icon} {result['name']:<28} {result['status_code']:>3}  {result['response_time_ms']:>9}ms"
        if result.get('item_count') is not None:
            line += f"  items={result['item_count']}"
        print(line)
        if result.get('error'):
            print(f"   Error: {result['error'][:200]}")

    def generate_report(self):
        """Print totals and a per-app breakdown"""
        total = len(self.results)
        passed = [r for r in self.results if r['success']]
        average = sum(r['response_time_ms'] for r in passed) / len(passed) if passed else 0

        print("\n" + "=" * 80)
        print("📊 API SMOKE TEST REPORT")
        print("=" * 80)
        print(f"Base URL: {self.base_url}")
        print(f"Successful: {len(passed)}/{total}")
        print(f"Average Response Time: {average:.2f}ms")
        if passed:
            slowest = max(passed, key=lambda r: r['response_time_ms'])
            print(f"Slowest: {slowest['name']} ({slowest['response_time_ms']}ms)")

        apps = {}
        for result in self.results:
            apps.setdefault(result['name'].split(' - ')[0], []).append(result)
        print("\n" + "-" * 80)
        for app, results in sorted(apps.items()):
            ok = sum(1 for r in results if r['success'])
            print(f"{app}: {ok}/{len(results)} successful")
        print("=" * 80)

    def save_results(self, filename: str):
        with open(filename, 'w') as f:
            json.dump({
                'test_date': datetime.now().isoformat(),
                'base_url': self.base_url,
                'results': self.results,
            }, f, indent=2)
        print(f"\n💾 Results saved to {filename}")


def main():
    parser = argparse.ArgumentParser(description='Time the read endpoints of a running Sphere backend')
    parser.add_argument('--base-url', default=DEFAULT_BASE_URL)
    parser.add_argument('--business-code', required=True)
    parser.add_argument('--email', required=True)
    parser.add_argument('--password', help='Prompted when omitted')
    parser.add_argument('--output', help='Write the results to this JSON file')
    args = parser.parse_args()

    password = args.password or getpass.getpass("Enter password: ")
    tester = APITester(args.base_url)
    if not tester.authenticate(args.business_code, args.email, password):
        sys.exit(1)

    print("\n🚀 Starting API Tests...\n")
    for name, endpoint, params in ENDPOINTS:
        tester.print_result(tester.test_endpoint(name, endpoint, params))

    tester.generate_report()
    if args.output:
        tester.save_results(args.output)
    sys.exit(0 if all(r['success'] for r in tester.results) else 1)


if __name__ == "__main__":
    main()
