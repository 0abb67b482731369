import unittest

from fastapi.testclient import TestClient

from tutor_schedule.main import app
from tutor_schedule.route_logging import EndpointNameRoute


class AppTests(unittest.TestCase):
    def test_health(self):
        client = TestClient(app)
        response = client.get('/health')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ok')
        client.close()

    def test_availability_routes_are_registered_with_endpoint_logging(self):
        routes = {route.path: route for route in app.routes if route.path.startswith('/api/availability')}

        self.assertEqual(
            sorted(routes),
            [
                '/api/availability/check',
                '/api/availability/day',
                '/api/availability/holidays',
                '/api/availability/pattern-check',
                '/api/availability/report',
            ],
        )
        self.assertTrue(all(isinstance(route, EndpointNameRoute) for route in routes.values()))


if __name__ == '__main__':
    unittest.main()
