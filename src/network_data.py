import logging
from typing import Tuple

import networkx as nx
import numpy as np
import pandas as pd
import pandapower as pp

import utils.config as config

logger = logging.getLogger(__name__)

# Baran & Wu 33-bus feeder: (from, to, R ohm, X ohm), modelled as 1 km sections
IEEE33_BRANCHES = [
    (1, 2, 0.0922, 0.0470), (2, 3, 0.4930, 0.2511), (3, 4, 0.3660, 0.1864),
    (4, 5, 0.3811, 0.1941), (5, 6, 0.8190, 0.7070), (6, 7, 0.1872, 0.6188),
    (7, 8, 0.7114, 0.2351), (8, 9, 1.0300, 0.7400), (9, 10, 1.0440, 0.7400),
    (10, 11, 0.1966, 0.0650), (11, 12, 0.3744, 0.1238), (12, 13, 1.4680, 1.1550),
    (13, 14, 0.5416, 0.7129), (14, 15, 0.5910, 0.5260), (15, 16, 0.7463, 0.5450),
    (16, 17, 1.2890, 1.7210), (17, 18, 0.7320, 0.5740), (2, 19, 0.1640, 0.1565),
    (19, 20, 1.5042, 1.3554), (20, 21, 0.4095, 0.4784), (21, 22, 0.7089, 0.9373),
    (3, 23, 0.4512, 0.3083), (23, 24, 0.8980, 0.7091), (24, 25, 0.8960, 0.7011),
    (6, 26, 0.2030, 0.1034), (26, 27, 0.2842, 0.1447), (27, 28, 1.0590, 0.9337),
    (28, 29, 0.8042, 0.7006), (29, 30, 0.5075, 0.2585), (30, 31, 0.9744, 0.9630),
    (31, 32, 0.3105, 0.3619), (32, 33, 0.3410, 0.5302),
]

# (bus, P kW, Q kvar)
IEEE33_LOADS = [
    (2, 100, 60), (3, 90, 40), (4, 120, 80), (5, 60, 30), (6, 60, 20),
    (7, 200, 100), (8, 200, 100), (9, 60, 20), (10, 60, 20), (11, 45, 30),
    (12, 60, 35), (13, 60, 35), (14, 120, 80), (15, 60, 10), (16, 60, 20),
    (17, 60, 20), (18, 90, 40), (19, 90, 40), (20, 90, 40), (21, 90, 40),
    (22, 90, 40), (23, 90, 50), (24, 420, 200), (25, 420, 200), (26, 60, 25),
    (27, 60, 25), (28, 60, 20), (29, 120, 70), (30, 200, 600), (31, 150, 70),
    (32, 210, 100), (33, 60, 40),
]

NUM_BUSES = 33
SLACK_BUS = 1
LINE_MAX_I_KA = 0.4


def ieee33_uk_data(
    pv_buses: list = None,
    pv_rated_kw: float = config.PV_RATED_KW,
    v_base: float = config.V_BASE,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Builds the IEEE 33-bus tables re-based to a UK 11kV feeder.
    Args:
        pv_buses (list): 1-based buses hosting rooftop PV.
        pv_rated_kw (float): Rated output of each PV installation.
        v_base (float): Line voltage in V.
    Returns:
        (bus_data, line_data, load_data, pv_data) DataFrames, bus numbers 1-based.
    """
    if pv_buses is None:
        pv_buses = config.PV_BUSES
    unknown = [bus for bus in pv_buses if bus < 1 or bus > NUM_BUSES]
    if unknown:
        raise ValueError(f'PV buses outside the 33-bus feeder: {unknown}')

    bus_numbers = np.arange(1, NUM_BUSES + 1)
    bus_data = pd.DataFrame({
        'bus': bus_numbers,
        'type': np.where(bus_numbers == SLACK_BUS, 'slack', 'pq'),
        'vn_kv': np.full(NUM_BUSES, v_base / 1e3),
    })

    branches = np.array(IEEE33_BRANCHES)
    line_data = pd.DataFrame({
        'from_bus': branches[:, 0].astype(int),
        'to_bus': branches[:, 1].astype(int),
        'r_ohm_per_km': branches[:, 2],
        'x_ohm_per_km': branches[:, 3],
        'length_km': np.ones(len(branches)),
    })

    load_data = pd.DataFrame(IEEE33_LOADS, columns=['bus', 'p_kw', 'q_kvar']).astype(
        {'p_kw': float, 'q_kvar': float}
    )

    pv_data = pd.DataFrame({
        'bus': np.array(sorted(set(pv_buses)), dtype=int),
        'p_kw': float(pv_rated_kw),
    })

    return bus_data, line_data, load_data, pv_data


def feeder_graph(line_data: pd.DataFrame) -> nx.Graph:
    """Radial feeder as a networkx graph, edges keep their line index."""
    graph = nx.Graph()
    for idx, line in line_data.iterrows():
        graph.add_edge(int(line.from_bus), int(line.to_bus), line_idx=idx)
    if not nx.is_tree(graph):
        raise ValueError('Line data does not describe a radial feeder')
    return graph


def downstream_buses(graph: nx.Graph, from_bus: int, to_bus: int) -> set:
    """
    Buses supplied through branch (from_bus, to_bus) when fed from the slack bus.
    """
    pruned = graph.copy()
    pruned.remove_edge(from_bus, to_bus)
    side = nx.node_connected_component(pruned, to_bus)
    if SLACK_BUS in side:
        side = nx.node_connected_component(pruned, from_bus)
    return side


def build_network(
    bus_data: pd.DataFrame,
    line_data: pd.DataFrame,
    load_data: pd.DataFrame,
    pv_data: pd.DataFrame,
    s_base: float = config.S_BASE,
    freq_hz: float = config.FREQ_HZ,
    source_vm_pu: float = config.SOURCE_VOLTAGE_PU,
) -> pp.pandapowerNet:
    """
    Creates the pandapower model of the feeder.
    pandapower indices are 0-based (bus n -> index n-1); loads and PV keep
    their 1-based bus number in the name column.
    """
    net = pp.create_empty_network(name='IEEE33 UK 11kV', f_hz=freq_hz, sn_mva=s_base / 1e6)

    for _, bus in bus_data.iterrows():
        pp.create_bus(net, vn_kv=bus.vn_kv, name=f'Bus {bus.bus}', index=int(bus.bus) - 1)

    pp.create_ext_grid(net, bus=SLACK_BUS - 1, vm_pu=source_vm_pu, va_degree=0.0, name='Primary substation')

    for _, line in line_data.iterrows():
        pp.create_line_from_parameters(
            net,
            from_bus=int(line.from_bus) - 1,
            to_bus=int(line.to_bus) - 1,
            length_km=line.length_km,
            r_ohm_per_km=line.r_ohm_per_km,
            x_ohm_per_km=line.x_ohm_per_km,
            c_nf_per_km=0.0,
            max_i_ka=LINE_MAX_I_KA,
            name=f'Line {int(line.from_bus)}-{int(line.to_bus)}',
        )

    for _, load in load_data.iterrows():
        pp.create_load(
            net,
            bus=int(load.bus) - 1,
            p_mw=load.p_kw / 1e3,
            q_mvar=load.q_kvar / 1e3,
            name=f'Load {int(load.bus)}',
        )

    for _, pv in pv_data.iterrows():
        pp.create_sgen(
            net,
            bus=int(pv.bus) - 1,
            p_mw=0.0,
            q_mvar=0.0,
            sn_mva=pv.p_kw / 1e3,
            name=f'PV {int(pv.bus)}',
        )

    # Nominal values, scaled by the profiles at each time step
    net.load['nominal_p_mw'] = net.load.p_mw.copy()
    net.load['nominal_q_mvar'] = net.load.q_mvar.copy()
    net.sgen['rated_p_mw'] = pv_data.p_kw.to_numpy() / 1e3

    logger.info(
        f'Pandapower network built: {len(net.bus)} buses, {len(net.line)} lines, '
        f'{len(net.load)} loads, {len(net.sgen)} PV units'
    )
    return net
