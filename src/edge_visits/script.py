"""
Client-side beacon snippet.

The beacon is best-effort telemetry: the page posts one JSON payload per
load and never waits on, or retries, the result.
"""

import json

COOKIE_NAME = "v"
COOKIE_MONTHS = 6


def beacon_script(endpoint: str) -> str:
    """Generate the beacon script HTML for templates.

    Features:
    - Visitor correlation cookie ("v"), refreshed for six months on each visit
    - Location, navigator and connection fields matching the beacon payload
    - Sent with keepalive so navigation away does not cancel it
    """
    url = json.dumps(endpoint)
    return f'''<script>
(function(){{
  var d=document,n=navigator,l=location;
  function readCookie(){{
    var m=d.cookie.match(/(?:^|;\\s*){COOKIE_NAME}=([^;]*)/);
    return m?m[1]:"";
  }}
  var id=readCookie()||(Date.now().toString()+Math.random().toString(36).substr(2,9));
  var exp=new Date();exp.setMonth(exp.getMonth()+{COOKIE_MONTHS});
  d.cookie="{COOKIE_NAME}="+id+"; expires="+exp.toUTCString()+"; path=/";
  var nav=(performance.getEntriesByType&&performance.getEntriesByType("navigation")[0])||{{}};
  var data={{
    timestamp:new Date().toISOString(),
    epoch_timestamp:Date.now(),
    referrer:d.referrer,
    url:l.origin,
    uri:l.href,
    path:l.pathname,
    port:l.port,
    query:l.search,
    hash:l.hash,
    protocol:l.protocol,
    user_agent:n.userAgent,
    language:n.language,
    hardware_concurrency:n.hardwareConcurrency,
    cookies_enabled:n.cookieEnabled,
    do_not_track:n.doNotTrack,
    memory:n.deviceMemory,
    connection_type:n.connection?n.connection.effectiveType:"",
    http_version:nav.nextHopProtocol||"",
    cookie:readCookie()
  }};
  fetch({url},{{method:"POST",headers:{{"Content-Type":"application/json"}},body:JSON.stringify(data),keepalive:true}}).catch(function(){{}});
}})();
</script>'''
