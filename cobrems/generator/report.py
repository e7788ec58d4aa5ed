"""
Human-readable summaries of a radiator model's configuration.
"""

from cobrems.core.constants import ME


def beamline_report(model) -> str:
    """Multi-line description of beam, radiator thickness and collimator."""
    beamline = model.beamline
    temperature = (
        "tabulated Debye-Waller"
        if beamline.target_temperature is None
        else f"{beamline.target_temperature:.1f} K"
    )
    lines = [
        "Beamline configuration",
        "----------------------",
        f"  beam energy            {beamline.beam_energy:.4f} GeV",
        f"  beam energy spread     {beamline.beam_erms * 1e3:.3f} MeV rms",
        f"  beam emittance         {beamline.beam_emittance:.3e} m rad",
        f"  spot at collimator     {beamline.collimator_spotrms * 1e3:.3f} mm rms",
        f"  collimator distance    {beamline.collimator_distance:.2f} m",
        f"  collimator diameter    {beamline.collimator_diameter * 1e3:.3f} mm",
        f"  characteristic angle   {ME / beamline.beam_energy * 1e6:.2f} urad",
        f"  collimator half-angle  {beamline.collimator_radius / beamline.collimator_distance * 1e6:.2f} urad",
        f"  target thickness       {beamline.target_thickness * 1e6:.1f} um",
        f"  target temperature     {temperature}",
        f"  collimated flux        {'yes' if model.collimated_flux else 'no'}",
        f"  polarized flux         {'yes' if model.polarized_flux else 'no'}",
    ]
    return "\n".join(lines)


def crystal_report(model) -> str:
    """Multi-line description of the radiator species and its orientation."""
    s = model.species
    h, k, l = s.primary_hkl
    lines = [
        f"Target crystal: {s.name}",
        "----------------------",
        f"  Z, A                   {s.Z:g}, {s.A:g}",
        f"  density                {s.density:.4g} g/cm^3",
        f"  lattice constant       {s.lattice_constant * 1e10:.4f} A",
        f"  unit-cell sites        {s.nsites}",
        f"  radiation length       {s.radiation_length * 1e2:.3f} cm",
        f"  Debye-Waller constant  {model.debye_waller_constant:.4e} GeV^-2",
        f"  mosaic spread          {s.mosaic_spread * 1e6:.2f} urad",
        f"  form-factor betaFF     {s.betaFF:.4e} GeV^-2",
        f"  primary reflection     ({h},{k},{l})",
        f"  thetax                 {model.thetax * 1e3:.5f} mrad",
        f"  thetay                 {model.thetay * 1e3:.5f} mrad",
        f"  thetaz                 {model.thetaz * 1e3:.5f} mrad",
        f"  coherent edge          {model.coherent_edge:.4f} GeV",
    ]
    return "\n".join(lines)
