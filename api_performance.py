"""
API Performance Testing Script
Times the read endpoints of the keychain order tracker against a running server

This script:
1. Logs in with JWT credentials
2. Requests every list/detail endpoint twice (cold, then warm cache)
3. Prints a per-endpoint report and saves the raw numbers as JSON
"""

import getpass
import json
import os
import sys
import time
from datetime import datetime
from typing import Dict, List, Optional

import requests

# Configuration
BASE_URL = os.environ.get("KEYCHAINS_API_URL", "http://127.0.0.1:8000/api/v1")
USERNAME = os.environ.get("KEYCHAINS_API_USER", "")
PASSWORD = os.environ.get("KEYCHAINS_API_PASSWORD", "")
TIMEOUT = 30


class APITester:
    """Class to handle API testing and performance measurement"""

    def __init__(self, base_url: str):
        self.base_url = base_url
        self.results: List[Dict] = []
        self.session = requests.Session()

    def authenticate(self, username: str, password: str) -> bool:
        """Authenticate and get access token"""
        print(f"🔐 Authenticating as {username}...")
        try:
            response = self.session.post(
                f"{self.base_url}/auth/login/",
                json={"username": username, "password": password},
                timeout=10
            )
        except requests.exceptions.RequestException as e:
            print(f"❌ Authentication error: {str(e)}")
            return False

        if response.status_code != 200:
            print(f"❌ Authentication failed: {response.status_code}")
            print(f"Response: {response.text}")
            return False

        self.session.headers.update({
            'Authorization': f"Bearer {response.json().get('access')}",
            'Content-Type': 'application/json'
        })
        print("✅ Authentication successful!")
        return True

    def test_endpoint(self, name: str, endpoint: str, params: Optional[Dict] = None, pass_label: str = "") -> Dict:
        """Request a single endpoint and measure response time"""
        url = f"{self.base_url}{endpoint}"
        result = {
            'name': name,
            'endpoint': endpoint,
            'pass': pass_label,
            'params': params or {},
            'timestamp': datetime.now().isoformat(),
        }

        try:
            start_time = time.time()
            response = self.session.get(url, params=params, timeout=TIMEOUT)
            result['response_time_ms'] = round((time.time() - start_time) * 1000, 2)
        except requests.exceptions.Timeout:
            result.update(status_code=0, response_time_ms=TIMEOUT * 1000, success=False,
                          error=f'Request timeout ({TIMEOUT}s)')
            self.results.append(result)
            return result
        except requests.exceptions.RequestException as e:
            result.update(status_code=0, response_time_ms=0, success=False, error=str(e))
            self.results.append(result)
            return result

        result['status_code'] = response.status_code
        result['success'] = response.status_code == 200
        try:
            data = response.json()
        except ValueError:
            data = None
            result['response_text'] = response.text[:200]

        if isinstance(data, (list, dict)):
            result['item_count'] = len(data)
        if not result['success']:
            result['error'] = response.text[:500]

        self.results.append(result)
        return result

    def first_id(self, endpoint: str) -> Optional[int]:
        """Id of the first row returned by a list endpoint"""
        response = self.session.get(f"{self.base_url}{endpoint}", timeout=TIMEOUT)
        if response.status_code != 200:
            return None
        rows = response.json()
        return rows[0]['id'] if rows else None

    def print_result(self, result: Dict):
        """Print a single test result"""
        status_icon = "✅" if result['success'] else "❌"
        label = f" [{result['pass']}]" if result.get('pass') else ""
        print(f"{status_icon} {result['name']}{label}: {result['status_code']} in {result['response_time_ms']}ms"
              + (f", {result['item_count']} items" if result.get('item_count') is not None else ""))
        if not result['success'] and result.get('error'):
            print(f"   Error: {result['error'][:200]}")

    def generate_report(self):
        """Generate a summary report of all tests"""
        successful = [r for r in self.results if r['success']]
        failed = [r for r in self.results if not r['success']]

        print("\n" + "=" * 80)
        print("📊 API PERFORMANCE TEST REPORT")
        print("=" * 80)
        print(f"Base URL: {self.base_url}")
        print(f"Total Requests: {len(self.results)}")
        print(f"Successful: {len(successful)} ✅")
        print(f"Failed: {len(failed)} ❌")

        if successful:
            avg = sum(r['response_time_ms'] for r in successful) / len(successful)
            slowest = max(successful, key=lambda r: r['response_time_ms'])
            print(f"Average Response Time: {avg:.2f}ms")
            print(f"Slowest: {slowest['name']} ({slowest['response_time_ms']}ms)")

        # Cold vs warm per endpoint shows whether the cache is doing its job
        print("\n" + "-" * 80)
        print("🔥 COLD vs WARM")
        print("-" * 80)
        by_name: Dict[str, Dict[str, float]] = {}
        for r in successful:
            by_name.setdefault(r['name'], {})[r['pass']] = r['response_time_ms']
        for name, timings in by_name.items():
            cold = timings.get('cold')
            warm = timings.get('warm')
            if cold is not None and warm is not None:
                print(f"  {name}: {cold}ms -> {warm}ms")

        if failed:
            print("\n" + "-" * 80)
            print("❌ FAILED REQUESTS")
            print("-" * 80)
            for r in failed:
                print(f"  {r['name']} ({r['endpoint']}): {r.get('error', 'Unknown error')[:200]}")

        print("\n" + "=" * 80)

    def save_results(self, filename: str = "api_test_results.json"):
        """Save results to a JSON file"""
        with open(filename, 'w') as f:
            json.dump({
                'test_date': datetime.now().isoformat(),
                'base_url': self.base_url,
                'total_tests': len(self.results),
                'successful_tests': sum(1 for r in self.results if r['success']),
                'results': self.results
            }, f, indent=2)
        print(f"\n💾 Results saved to {filename}")


def main():
    """Run every read endpoint cold and warm"""
    print("=" * 80)
    print("🧪 API PERFORMANCE TESTING TOOL")
    print("=" * 80)
    print(f"Target: {BASE_URL}\n")

    username = USERNAME or input("Enter username: ")
    password = PASSWORD or getpass.getpass("Enter password: ")

    tester = APITester(BASE_URL)
    if not tester.authenticate(username, password):
        print("❌ Authentication failed. Cannot proceed with tests.")
        sys.exit(1)

    endpoints = [
        ("Order Groups - All", "/order-groups/", {"status": "all"}),
        ("Order Groups - Active", "/order-groups/", {"status": "active"}),
        ("Order Groups - Completed", "/order-groups/", {"status": "completed"}),
        ("Order Groups - Summary", "/order-groups/summary/", None),
        ("Orders - List", "/orders/", None),
        ("Orders - Not done", "/orders/", {"done": "false"}),
        ("History - Audit Logs", "/audit-logs/", None),
        ("Auth - Current User", "/auth/me/", None),
    ]

    group_id = tester.first_id("/order-groups/")
    if group_id is not None:
        endpoints.append(("Order Groups - Detail", f"/order-groups/{group_id}/", None))
    order_id = tester.first_id("/orders/")
    if order_id is not None:
        endpoints.append(("Orders - Detail", f"/orders/{order_id}/", None))

    print("\n🚀 Starting API Tests...\n")
    for pass_label in ("cold", "warm"):
        for name, endpoint, params in endpoints:
            tester.print_result(tester.test_endpoint(name, endpoint, params, pass_label))

    tester.generate_report()
    tester.save_results("api_test_results.json")
    print("\n✅ All tests completed!")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n⚠️ Tests interrupted by user")
        sys.exit(0)
