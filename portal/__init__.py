"""portal/ -- View payloads shared by the HTML UI and the JSON API.

Layer rule: portal/ imports from auth/ and core/ only.
api/ and web/ both import from portal/; portal/ never imports from them.
"""
