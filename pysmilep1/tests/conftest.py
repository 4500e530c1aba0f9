import pytest
from requests.structures import CaseInsensitiveDict

from pysmilep1.transport import TransportResponse

# firmware 2.x /core/modules (single quoted attributes)
MODULES_XML = """<?xml version='1.0' encoding='UTF-8'?>
<modules>
<module id='c678caf322124cc2bd4b84c0e514b103'>
<vendor_name>Xemex</vendor_name>
<services>
<electricity_point_meter id='c35b5cf0b4eb46c2989dba87d07b1b7b'>
<measurement log_date='2019-06-10T17:00:00+02:00' unit='W' directionality='consumed'>1130.000</measurement>
<measurement log_date='2019-06-10T17:00:00+02:00' unit='W' directionality='produced'>0.000</measurement>
</electricity_point_meter>
<electricity_cumulative_meter id='a17aa51dda834556905f3ea1689d18f7'>
<measurement log_date='2019-06-10T17:00:00+02:00' unit='Wh' directionality='consumed' tariff_indicator='nl_peak'>7173526.000</measurement>
<measurement log_date='2019-06-10T17:00:00+02:00' unit='Wh' directionality='consumed' tariff_indicator='nl_offpeak'>10694674.000</measurement>
<measurement log_date='2019-06-10T17:00:00+02:00' unit='Wh' directionality='produced' tariff_indicator='nl_peak'>2979339.000</measurement>
<measurement log_date='2019-06-10T17:00:00+02:00' unit='Wh' directionality='produced' tariff_indicator='nl_offpeak'>1100755.000</measurement>
</electricity_cumulative_meter>
</services>
</module>
<module id='f7b2aeab9f1e43e8b4e2d37b73f96045'>
<services>
<gas_cumulative_meter id='44e77f7762c84cc8973a752a8128caf5'>
<measurement log_date='2019-06-10T16:00:00+02:00' unit='m3' directionality='consumed'>2162.690</measurement>
</gas_cumulative_meter>
</services>
</module>
</modules>
"""

# firmware 3.x /core/direct_objects
DIRECT_OBJECTS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<direct_objects>
<location id="fafcd13da58c4547816ca7f01b68c97a">
<name>P1 Meter</name>
<type>building</type>
<actuators/>
<logs>
<point_log id="1b9c83a9e28d4f33bfa5fcc5b8435a71">
<unit>W</unit>
<type>electricity_produced</type>
<updated_date>2019-01-26T15:39:56+01:00</updated_date>
<period start_date="2015-02-21T12:30:05+01:00" end_date="2019-01-26T15:39:56+01:00">
<measurement log_date="2019-01-26T15:39:56+01:00">0.000</measurement>
</period>
</point_log>
<interval_log id="3418669cbeee4913b5e6ef4564dc28db">
<unit>Wh</unit>
<type>electricity_consumed</type>
<interval>PT300S</interval>
<period start_date="2015-02-21T13:00:00+01:00" end_date="2019-01-26T15:00:00+01:00" interval="PT1H">
<measurement log_date="2019-01-26T15:00:00+01:00" tariff_indicator="nl_offpeak">562.000</measurement>
<measurement log_date="2019-01-26T15:00:00+01:00" tariff_indicator="nl_peak">0.000</measurement>
</period>
</interval_log>
<point_log id="1ef46525fa584c38b02b9a52227f2907">
<unit>W</unit>
<type>electricity_consumed</type>
<updated_date>2019-01-26T15:39:56+01:00</updated_date>
<period start_date="2015-02-21T12:30:05+01:00" end_date="2019-01-26T15:39:56+01:00">
<measurement log_date="2019-01-26T15:39:56+01:00" tariff="nl_offpeak">320.000</measurement>
<measurement log_date="2019-01-26T15:39:56+01:00" tariff="nl_peak">0.000</measurement>
</period>
</point_log>
<cumulative_log id="497cc22ea315486fade7fae0b2ab730e">
<unit>Wh</unit>
<type>electricity_consumed</type>
<updated_date>2019-01-26T15:35:00+01:00</updated_date>
<period start_date="2015-02-21T12:30:05+01:00" end_date="2019-01-26T15:35:00+01:00">
<measurement log_date="2019-01-26T15:35:00+01:00" tariff_indicator="nl_offpeak">16796096.000</measurement>
<measurement log_date="2019-01-26T15:35:00+01:00" tariff_indicator="nl_peak">10393436.000</measurement>
</period>
</cumulative_log>
<cumulative_log id="9ce1baaf6a7a4d5fb01ac07524b37315">
<unit>Wh</unit>
<type>electricity_produced</type>
<updated_date>2019-01-26T15:35:00+01:00</updated_date>
<period start_date="2015-02-21T12:30:05+01:00" end_date="2019-01-26T15:35:00+01:00">
<measurement log_date="2019-01-26T15:35:00+01:00" tariff="nl_offpeak">1575458.000</measurement>
<measurement log_date="2019-01-26T15:35:00+01:00" tariff="nl_peak">4267304.000</measurement>
</period>
</cumulative_log>
<cumulative_log id="565ac17fc65048479dfc17a34db294c1">
<unit>m3</unit>
<type>gas_consumed</type>
<updated_date>2019-01-26T15:00:00+01:00</updated_date>
<period start_date="2015-02-21T13:00:00+01:00" end_date="2019-01-26T15:00:00+01:00">
<measurement log_date="2019-01-26T15:00:00+01:00">6542.004</measurement>
</period>
</cumulative_log>
</logs>
</location>
</direct_objects>
"""

# extra point logs reported by 3-phase meters
PHASE_LOGS_XML = """
<point_log id="p1c"><unit>W</unit><type>electricity_phase_one_consumed</type>
<period><measurement log_date="2019-01-26T15:39:56+01:00">500.000</measurement></period></point_log>
<point_log id="p1p"><unit>W</unit><type>electricity_phase_one_produced</type>
<period><measurement log_date="2019-01-26T15:39:56+01:00">100.000</measurement></period></point_log>
<point_log id="p1v"><unit>V</unit><type>voltage_phase_one</type>
<period><measurement log_date="2019-01-26T15:39:56+01:00">230.000</measurement></period></point_log>
<point_log id="p2c"><unit>W</unit><type>electricity_phase_two_consumed</type>
<period><measurement log_date="2019-01-26T15:39:56+01:00">690.000</measurement></period></point_log>
<point_log id="p2v"><unit>V</unit><type>voltage_phase_two</type>
<period><measurement log_date="2019-01-26T15:39:56+01:00">230.000</measurement></period></point_log>
<point_log id="p3c"><unit>W</unit><type>electricity_phase_three_consumed</type>
<period><measurement log_date="2019-01-26T15:39:56+01:00">0.000</measurement></period></point_log>
"""

GATEWAY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<domain_objects>
<gateway id="48ac7095f50c4cf19fdfe7d1b66f99ae">
<created_date>2019-07-01T08:18:25.458+02:00</created_date>
<deleted_date/>
<enabled>true</enabled>
<vendor_name>Plugwise</vendor_name>
<hardware_version>AME Smile 2.0 board</hardware_version>
<firmware_version>3.3.6</firmware_version>
<mac_address>C49300062A32</mac_address>
<short_id>hcfrasde</short_id>
<lan_ip/>
<wifi_ip>192.168.1.2</wifi_ip>
<project id="123306def5eb4172ae74435aea21e753">
<name>-- Stock</name>
<is_default>false</is_default>
</project>
<features>
<remote_control id="15f73deb7f6e49df8b2510b816997165">
<activation_date>2019-07-03T08:59:26+02:00</activation_date>
<valid_to/>
</remote_control>
</features>
</gateway>
</domain_objects>
"""

STATUS_V2_XML = """<?xml version="1.0" encoding="UTF-8"?>
<status>
<system>
<product>smile</product>
<mode>p1</mode>
<version>2.1.13</version>
<date>2019-06-14T10:34:21+0200</date>
</system>
<network>
<hostname>smile7ac5b6</hostname>
<ip_address>192.168.1.2</ip_address>
<link_quality>-35</link_quality>
</network>
</status>
"""

INTERFACES_XML = """<?xml version="1.0" encoding="UTF-8"?>
<gateways>
<gateway id="48ac7095f50c4cf19fdfe7d1b66f99ae">
<interfaces>
<interface>
<type>lan</type>
<name>eth0</name>
<mac>7825427AB576</mac>
<state>down</state>
</interface>
<interface>
<type>wlan</type>
<name>wlan0</name>
<power unit="dBm">21</power>
<ssid>MyWifi</ssid>
<channel>9</channel>
<state>up</state>
</interface>
</interfaces>
</gateway>
</gateways>
"""

WIFI_SCAN_XML = """<?xml version="1.0" encoding="UTF-8"?>
<gateways>
<gateway id="48ac7095f50c4cf19fdfe7d1b66f99ae">
<interfaces>
<interface>
<name>eth0</name>
</interface>
<interface>
<name>wlan0</name>
<networks>
<network>
<ssid>myWifi</ssid>
<access_points>
<access_point>
<mac>7825427AB5B1</mac>
<encryption>wpa2-psk</encryption>
<quality>63/70</quality>
<signal_strength unit="dBm">-47</signal_strength>
<channel>5</channel>
</access_point>
</access_points>
</network>
<network>
<ssid>REMOTE85</ssid>
<access_points>
<access_point>
<mac>001DC904DB32</mac>
<encryption>wpa2-psk</encryption>
<quality>23/70</quality>
<signal_strength unit="dBm">-87</signal_strength>
<channel>3</channel>
</access_point>
</access_points>
</network>
</networks>
</interface>
</interfaces>
</gateway>
</gateways>
"""

LOGS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<locations>
<location id="fafcd13da58c4547816ca7f01b68c97a">
<name>P1 Meter</name>
<logs>
<interval_log id="a17aa51dda834556905f3ea1689d18f7">
<unit>Wh</unit>
<type>electricity_consumed</type>
<interval>PT15M</interval>
<period start_date="2019-07-21T00:00:00.000+02:00" end_date="2019-07-21T01:00:00.000+02:00" interval="PT1H">
<measurement log_date="2019-07-21T00:00:00.000+02:00" tariff="nl_offpeak">228</measurement>
<measurement log_date="2019-07-21T01:00:00.000+02:00" tariff="nl_offpeak">214</measurement>
</period>
</interval_log>
</logs>
</location>
</locations>
"""

DISCOVERY_JSON = ('{"product": "smile", "version": "3.3.6", "lan_ip": "", "wifi_ip": "192.168.1.2", '
                  '"timestamp": "2019-07-20T14:58:38+02:00", "rest_root": "/"}')


def make_response(body="", status_code=200, content_type="text/xml", headers=None):
    h = CaseInsensitiveDict({'content-type': content_type})
    h.update(headers or {})
    return TransportResponse(status_code, h, body)


class StubTransport:
    """Replaces SmileTransport, answers from a path -> response table and records calls"""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []
        self.closed = False

    def request(self, host, port, path, method='GET', auth=None, timeout=None, verify=False):
        self.calls.append({'host': host, 'port': port, 'path': path, 'method': method, 'auth': auth,
                           'timeout': timeout, 'verify': verify})
        response = self.routes.get(path)
        if response is None:
            # matrix parameters e.g. /core/domain_objects;class=Gateway
            response = self.routes.get(path.split(';')[0])
        if response is None:
            return make_response("Not Found", status_code=404, content_type="text/html")
        if isinstance(response, Exception):
            raise response
        return response

    def paths(self):
        return [c['path'] for c in self.calls]

    def close(self):
        self.closed = True


@pytest.fixture
def modules_xml():
    return MODULES_XML


@pytest.fixture
def direct_objects_xml():
    return DIRECT_OBJECTS_XML


@pytest.fixture
def three_phase_xml():
    return DIRECT_OBJECTS_XML.replace("</logs>", PHASE_LOGS_XML + "</logs>")


@pytest.fixture
def responses():
    """Device answers for a firmware 3.x Smile"""
    return {
        '/core/domain_objects': make_response(GATEWAY_XML),
        '/core/direct_objects': make_response(DIRECT_OBJECTS_XML),
        '/core/modules': make_response(MODULES_XML),
        '/core/locations/logs': make_response(LOGS_XML),
        '/core/gateways/network': make_response(INTERFACES_XML),
        '/core/gateways/network;@scan': make_response(WIFI_SCAN_XML),
        '/proxy/auth/announce/hcfrasde.json': make_response(DISCOVERY_JSON, content_type="application/json"),
    }


@pytest.fixture
def stub_transport(responses):
    return StubTransport(responses)


@pytest.fixture(name="response_factory")
def fixture_response_factory():
    return make_response


@pytest.fixture(name="transport_factory")
def fixture_transport_factory():
    return StubTransport


@pytest.fixture
def gateway_xml():
    return GATEWAY_XML


@pytest.fixture
def status_v2_xml():
    return STATUS_V2_XML
