import unittest

from catalog.services.id_allocator import next_vehicle_id


class TestNextVehicleId(unittest.TestCase):
    def test_empty_store_starts_at_one(self):
        self.assertEqual(next_vehicle_id(None), 1)

    def test_one_past_the_highest_id(self):
        self.assertEqual(next_vehicle_id(7), 8)


if __name__ == '__main__':
    unittest.main()
