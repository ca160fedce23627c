import csv
import io
import unittest

from usage_report.models import App, Org, Report, ServiceInstance, Space, percent

EXPECTED_TEXT = """\
Org 'test-org'
  Quota: 4096 MB
  Used: 256 MB (6.25%)
  Committed: 256 MB
  Apps: 2 (1 running)
  Space 'test-space':
    Committed: 256 MB
    Apps: 2 (1 running)
    App 1: 128 MB x 2 = 256 MB (running)
    App 2: 128 MB x 1 = 128 MB (stopped)
    Service instances: my-mysql, my-redis, extra-mysql
"""

EXPECTED_CSV = """\
org_name,org_quota_mb,org_used_mb,space_name,app_memory_mb,app_instances,app_total_mb,app_running,service_instances
test-org,4096,256,test-space,128,2,256,true,my-mysql;my-redis;extra-mysql
test-org,4096,256,test-space,128,1,128,false,my-mysql;my-redis;extra-mysql
"""


def sample_report() -> Report:
    return Report(
        orgs=(
            Org(
                name="test-org",
                memory_quota=4096,
                memory_usage=256,
                spaces=(
                    Space(
                        name="test-space",
                        apps=(
                            App(ram=128, instances=2, running=True),
                            App(ram=128, instances=1, running=False),
                        ),
                        service_instances=(
                            ServiceInstance(name="my-mysql"),
                            ServiceInstance(name="my-redis"),
                            ServiceInstance(name="extra-mysql"),
                        ),
                    ),
                ),
            ),
        )
    )


class TestPercent(unittest.TestCase):
    def test_two_decimal_places(self):
        self.assertEqual(percent(256, 4096), "6.25%")
        self.assertEqual(percent(1, 3), "33.33%")
        self.assertEqual(percent(4096, 4096), "100.00%")

    def test_zero_quota_is_not_available(self):
        self.assertEqual(percent(256, 0), "N/A")
        self.assertEqual(percent(0, 0), "N/A")


class TestMemoryTotals(unittest.TestCase):
    def test_app_totals(self):
        app = App(ram=128, instances=3, running=False)
        self.assertEqual(app.total_memory, 384)
        self.assertEqual(app.committed_memory, 0)

    def test_app_counts(self):
        org = sample_report().orgs[0]
        self.assertEqual(org.spaces[0].running_apps, 1)
        self.assertEqual(org.app_count, 2)
        self.assertEqual(org.running_apps, 1)

    def test_space_and_org_committed_memory(self):
        org = sample_report().orgs[0]
        self.assertEqual(org.spaces[0].committed_memory, 256)
        self.assertEqual(org.committed_memory, 256)


class TestReportText(unittest.TestCase):
    def test_should_return_human_readable_formatted_string(self):
        self.assertEqual(sample_report().to_text(), EXPECTED_TEXT)
        self.assertEqual(str(sample_report()), EXPECTED_TEXT)

    def test_rendering_is_deterministic(self):
        report = sample_report()
        self.assertEqual(report.to_text(), report.to_text())
        self.assertEqual(report.to_text(), sample_report().to_text())

    def test_empty_report(self):
        self.assertEqual(Report().to_text(), "")

    def test_zero_quota_org(self):
        report = Report(orgs=(Org(name="free", memory_quota=0, memory_usage=64),))
        self.assertEqual(
            report.to_text(),
            "Org 'free'\n  Quota: 0 MB\n  Used: 64 MB (N/A)\n  Committed: 0 MB\n  Apps: 0 (0 running)\n",
        )

    def test_space_without_apps_or_instances(self):
        report = Report(
            orgs=(Org(name="o", memory_quota=1024, memory_usage=0, spaces=(Space(name="empty"),)),)
        )
        self.assertIn(
            "  Space 'empty':\n    Committed: 0 MB\n    Apps: 0 (0 running)\n    Service instances: none\n",
            report.to_text(),
        )

    def test_app_columns_are_aligned(self):
        space = Space(
            name="s",
            apps=tuple(App(ram=64, instances=1, running=True) for _ in range(9))
            + (App(ram=1024, instances=12, running=True),),
        )
        lines = space.text_lines()
        self.assertEqual(lines[3], "    App 1:    64 MB x  1 =    64 MB (running)")
        self.assertEqual(lines[12], "    App 10: 1024 MB x 12 = 12288 MB (running)")
        self.assertEqual(lines[2], "    Apps: 10 (10 running)")
        self.assertEqual(space.committed_memory, 9 * 64 + 12288)


class TestReportCSV(unittest.TestCase):
    def test_should_return_csv_formatted_string(self):
        self.assertEqual(sample_report().to_csv(), EXPECTED_CSV)

    def test_rendering_is_deterministic(self):
        self.assertEqual(sample_report().to_csv(), sample_report().to_csv())

    def test_empty_report_is_only_header(self):
        self.assertEqual(Report().to_csv().splitlines(), [EXPECTED_CSV.splitlines()[0]])

    def test_org_quota_and_usage_on_every_row(self):
        report = Report(
            orgs=(
                Org(
                    name="o",
                    memory_quota=2048,
                    memory_usage=512,
                    spaces=(
                        Space(name="a", apps=(App(64, 1, True), App(64, 2, True))),
                        Space(name="b", apps=(App(256, 1, False),)),
                    ),
                ),
            )
        )
        rows = list(csv.reader(io.StringIO(report.to_csv())))
        self.assertEqual(len(rows), 4)
        for row in rows[1:]:
            self.assertEqual(row[:3], ["o", "2048", "512"])
        self.assertEqual([row[3] for row in rows[1:]], ["a", "a", "b"])

    def test_space_without_apps_keeps_its_service_instances(self):
        report = Report(
            orgs=(
                Org(
                    name="o",
                    memory_quota=0,
                    memory_usage=0,
                    spaces=(Space(name="data", service_instances=(ServiceInstance("db"),)),),
                ),
                Org(name="bare", memory_quota=10, memory_usage=0),
            )
        )
        self.assertEqual(
            report.to_csv().splitlines()[1:],
            ["o,0,0,data,,,,,db", "bare,10,0,,,,,,"],
        )

    def test_names_with_commas_are_quoted(self):
        report = Report(
            orgs=(
                Org(
                    name="acme, inc",
                    memory_quota=1,
                    memory_usage=0,
                    spaces=(Space(name="dev", apps=(App(1, 1, True),)),),
                ),
            )
        )
        self.assertEqual(report.to_csv().splitlines()[1], '"acme, inc",1,0,dev,1,1,1,true,')


if __name__ == "__main__":
    unittest.main()
