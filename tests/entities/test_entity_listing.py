from tests.entities.base import *  # noqa: F401,F403


class EntityListingTests(EntityCrudBase):
    def setUp(self):
        super().setUp()
        self._seed(Comorbidity, name="Asthma", sequence=2, is_deleted=False, favourite=True)
        self._seed(Comorbidity, name="Diabetes", sequence=1, is_deleted=False, favourite=None)
        self._seed(Comorbidity, name="Hypertension", sequence=2, is_deleted=True, favourite=False)
        self._seed(Comorbidity, name="asthma (childhood)", sequence=3, is_deleted=False, favourite=None)

    def _list(self, role: str = "VIEWER", **params):
        return self.client.get("/api/comorbidities", headers=self._headers(role), params=params)

    def _names(self, **params) -> list[str]:
        response = self._list(**params)
        self.assertEqual(response.status_code, 200, response.text)
        return [row["name"] for row in response.json()]

    def test_default_listing_returns_first_page(self):
        self.assertEqual(len(self._names()), 4)
        self.assertEqual(len(self._names(pageSize=3)), 3)

    def test_filters_are_combined_with_and(self):
        filters = self._filters(("Sequence", "Equal", "2"), ("IsDeleted", "Equal", "false"))
        self.assertEqual(self._names(filters=filters), ["Asthma"])

    def test_search_narrows_filtered_rows(self):
        filters = self._filters(("IsDeleted", "Equal", "false"))
        self.assertEqual(self._names(filters=filters, searchTerm="ASTHMA", sortField="Sequence"), ["Asthma", "asthma (childhood)"])

    def test_sort_and_page(self):
        self.assertEqual(
            self._names(sortField="Name", sortOrder="desc", pageNumber=1, pageSize=2),
            ["asthma (childhood)", "Hypertension"],
        )
        self.assertEqual(
            self._names(sortField="Name", sortOrder="desc", pageNumber=2, pageSize=2),
            ["Diabetes", "Asthma"],
        )
        self.assertEqual(self._names(sortField="Name", pageNumber=3, pageSize=2), [])

    def test_null_filter_and_null_ordering(self):
        filters = self._filters(("Favourite", "Equal", None))
        self.assertEqual(sorted(self._names(filters=filters)), ["Diabetes", "asthma (childhood)"])
        filters = self._filters(("Favourite", "NotEqual", "true"))
        self.assertEqual(self._names(filters=filters, sortField="Sequence"), ["Diabetes", "Hypertension", "asthma (childhood)"])

    def test_rows_of_other_tenants_are_invisible(self):
        other_id = self._seed(Comorbidity, tenant_id=uuid4(), name="Asthma", sequence=1)
        self.assertEqual(len(self._names(searchTerm="asthma")), 2)
        response = self.client.get(f"/api/comorbidities/{other_id}", headers=self._headers())
        self.assertEqual(response.status_code, 404)
        response = self.client.delete(f"/api/comorbidities/{other_id}", headers=self._headers())
        self.assertEqual(response.status_code, 404)

    def test_invalid_paging_returns_400(self):
        response = self._list(pageSize=0)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Page size invalid")
        response = self._list(pageNumber=0)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Page number invalid")

    def test_invalid_sort_order_returns_400(self):
        response = self._list(sortField="Name", sortOrder="sideways")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid sort order. Use 'asc' or 'desc'")

    def test_unknown_fields_return_400(self):
        response = self._list(sortField="Severity")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Severity", response.json()["detail"])
        response = self._list(filters=self._filters(("Severity", "Equal", "1")))
        self.assertEqual(response.status_code, 400)

    def test_bad_filter_values_return_400(self):
        response = self._list(filters=self._filters(("Sequence", "GreaterThan", "two")))
        self.assertEqual(response.status_code, 400)
        response = self._list(filters=self._filters(("IsDeleted", "Contains", "t")))
        self.assertEqual(response.status_code, 400)
        response = self._list(filters="not json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid filters format")
        response = self._list(filters=json.dumps([{"PropertyName": "Name", "Operator": "Like", "Value": "a"}]))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid filters format")

    def test_page_far_beyond_the_end_returns_empty(self):
        self.assertEqual(self._names(pageNumber=2**62, pageSize=10), [])
        self.assertEqual(self._names(pageNumber=2**62, pageSize=10, sortField="Name"), [])
        self.assertEqual(len(self._names(pageSize=2**63)), 4)
