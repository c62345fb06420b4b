import unittest

from vc_workflow.grouping.group_model import ChangeGroup


class TestGroupModel(unittest.TestCase):
    def test_change_group_dataclass(self) -> None:
        group = ChangeGroup(key="dags", files=["dags/a.py"])
        self.assertEqual(group.key, "dags")
        self.assertEqual(group.files, ["dags/a.py"])
        self.assertFalse(group.is_wildcard)

    def test_wildcard_group(self) -> None:
        self.assertTrue(ChangeGroup(key="*").is_wildcard)
        self.assertEqual(ChangeGroup(key="*").files, [])


if __name__ == "__main__":
    unittest.main()
