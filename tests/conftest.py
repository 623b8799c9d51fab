from typing import List
from urllib.parse import parse_qs

import httpx
import pytest

from stanford_dining import dining


PAGE_HTML = """
<html><body><form method="post" action="./Menu.aspx" id="form1">
<input type="hidden" name="__VIEWSTATE" id="__VIEWSTATE" value="vs-token" />
<input type="hidden" name="__VIEWSTATEGENERATOR" id="__VIEWSTATEGENERATOR" value="gen-token" />
<input type="hidden" name="__EVENTVALIDATION" id="__EVENTVALIDATION" value="ev-token" />
<select name="ctl00$MainContent$lstLocations" id="MainContent_lstLocations">
  <option value="">-- Select a Dining Hall --</option>
  <option value="Arrillaga">  Arrillaga  </option>
  <option value="FlorenceMoore">Florence Moore</option>
</select>
<select name="ctl00$MainContent$lstDay" id="MainContent_lstDay">
  <option value="2/26/2026">Thursday, February 26</option>
  <option value="2/27/2026">Friday, February 27</option>
</select>
<select name="ctl00$MainContent$lstMealType" id="MainContent_lstMealType">
  <option value="Breakfast">Breakfast</option>
  <option value="Lunch">Lunch</option>
</select>
</form></body></html>
"""

MENU_HTML = """
<html><body><ul>
<li class="clsMenuItem clsGF_Row"><span class="clsLabel_Name">Rice Bowl</span></li>
<li class="clsMenuItem clsVGN_Row clsV_Row"><span class="clsLabel_Name">Tofu Stir Fry</span></li>
</ul></body></html>
"""

SET_COOKIES = [
    "ASP.NET_SessionId=abc123; path=/; HttpOnly; SameSite=Lax",
    "BIGipServer=rd5; path=/; Secure",
]


class FakeUpstream:
    def __init__(self, page_html=PAGE_HTML, menu_html=MENU_HTML, get_status=200, post_status=200):
        self.page_html = page_html
        self.menu_html = menu_html
        self.get_status = get_status
        self.post_status = post_status
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            headers = [("set-cookie", cookie) for cookie in SET_COOKIES]
            return httpx.Response(self.get_status, headers=headers, text=self.page_html)
        return httpx.Response(self.post_status, text=self.menu_html)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def posted_form(self):
        posts = [r for r in self.requests if r.method == "POST"]
        assert posts, "no POST was sent upstream"
        return {k: v[0] for k, v in parse_qs(posts[-1].content.decode(), keep_blank_values=True).items()}


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(dining, "make_client", fake.client)
    return fake
